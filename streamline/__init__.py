"""
Streamline: typed contract bindings for sandboxed block-processing scripts.

Two phases:

- generation: contract interface descriptors (ABI JSON) → accessor tables
  (`streamline.abi`, `streamline.generator`)
- run time: log matching and decoding, dynamic value conversion, store
  accessors with delta tracking (`streamline.runtime`)

Façade:

- version() -> str
- load_bindings(directory, *, caller=None, config=None) -> Registry
    Load every *.json descriptor in `directory`, generate the accessors and
    bind them into a read-only registry. Raises GenerationFatal on a
    malformed descriptor.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from .errors import NO_VALUE, GenerationFatal, RpcError, StreamlineError, ValidationError
from .version import __version__

if TYPE_CHECKING:  # pragma: no cover
    from .config import BridgeConfig
    from .runtime.calls import CallProvider
    from .runtime.registry import Registry


def version() -> str:
    """Return the streamline semantic version string."""
    return __version__


def load_bindings(
    directory: Union[str, Path, None] = None,
    *,
    caller: Optional["CallProvider"] = None,
    config: Optional["BridgeConfig"] = None,
) -> "Registry":
    from .abi.descriptor import load_interfaces
    from .config import load_config
    from .generator import generate_all
    from .runtime.registry import build_registry

    cfg = config or load_config()
    table = generate_all(load_interfaces(directory if directory is not None else cfg.abi_dir))
    return build_registry(table, caller=caller, config=cfg)


__all__ = [
    "__version__",
    "version",
    "load_bindings",
    "StreamlineError",
    "GenerationFatal",
    "ValidationError",
    "RpcError",
    "NO_VALUE",
]
