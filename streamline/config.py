"""
streamline.config: runtime knobs for the bridge layer and the CLI.

Configuration precedence:
  1) Environment variables (STREAMLINE_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - STREAMLINE_RPC_URL                (str)    default: http://127.0.0.1:8545
  - STREAMLINE_RPC_TIMEOUT            (float)  default: 10.0 seconds
  - STREAMLINE_CALL_BLOCK_TAG         (str)    default: latest
  - STREAMLINE_LOG_CONVERSIONS        (bool)   default: false
  - STREAMLINE_LOG_LEVEL              (str)    default: INFO
  - STREAMLINE_MAX_STORE_KEY_BYTES    (int)    default: 1024
  - STREAMLINE_MAX_STORE_VALUE_BYTES  (int)    default: 1_048_576  (1 MiB)
  - STREAMLINE_ABI_DIR                (path)   default: ./abi

Usage:
    from streamline.config import load_config
    CFG = load_config()
    if CFG.log_conversions: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    return max(min_v, min(max_v, v))


def _env_float(name: str, default: float, *, min_v: float, max_v: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = float(raw)
    except ValueError:
        return default
    return max(min_v, min(max_v, v))


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    return raw.strip() if raw and raw.strip() else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class BridgeConfig:
    # Remote read-only calls
    rpc_url: str
    rpc_timeout: float
    call_block_tag: str

    # Diagnostics
    log_conversions: bool
    log_level: str

    # Store caps (enforced by the store accessors)
    max_store_key_bytes: int
    max_store_value_bytes: int

    # Generation input
    abi_dir: Path

    def as_dict(self) -> Dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "rpc_timeout": self.rpc_timeout,
            "call_block_tag": self.call_block_tag,
            "log_conversions": self.log_conversions,
            "log_level": self.log_level,
            "max_store_key_bytes": self.max_store_key_bytes,
            "max_store_value_bytes": self.max_store_value_bytes,
            "abi_dir": str(self.abi_dir),
        }


@lru_cache(maxsize=1)
def load_config() -> BridgeConfig:
    """
    Build and cache a BridgeConfig from environment + safe defaults.
    """
    return BridgeConfig(
        rpc_url=_env_str("STREAMLINE_RPC_URL", "http://127.0.0.1:8545"),
        rpc_timeout=_env_float("STREAMLINE_RPC_TIMEOUT", 10.0, min_v=0.1, max_v=300.0),
        call_block_tag=_env_str("STREAMLINE_CALL_BLOCK_TAG", "latest"),
        log_conversions=_env_bool("STREAMLINE_LOG_CONVERSIONS", False),
        log_level=_env_str("STREAMLINE_LOG_LEVEL", "INFO").upper(),
        max_store_key_bytes=_env_int("STREAMLINE_MAX_STORE_KEY_BYTES", 1024, min_v=1, max_v=65_536),
        max_store_value_bytes=_env_int(
            "STREAMLINE_MAX_STORE_VALUE_BYTES", 1_048_576, min_v=64, max_v=16_777_216
        ),
        abi_dir=Path(_env_str("STREAMLINE_ABI_DIR", "abi")).expanduser(),
    )


CFG: BridgeConfig = load_config()

__all__ = ["BridgeConfig", "load_config", "CFG"]
