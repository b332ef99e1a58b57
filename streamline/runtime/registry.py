"""
streamline.runtime.registry: the process-wide accessor table.

`build_registry()` turns generated `AccessorSpec` tables into script-callable
objects once, at startup. The result is read-only:

    >>> reg = build_registry(generate_all(load_interfaces("abi")), caller=JsonRpcCaller())
    >>> reg["erc20.transfer"](block)                      # event accessor
    >>> reg.module("erc20").call_total_supply("0x…")      # call accessor
    >>> reg["uint"]("1000")                               # builtin

Nothing in a registry is mutated while blocks are processed.
"""

from __future__ import annotations

import logging
from types import MappingProxyType, SimpleNamespace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from ..abi.descriptor import EventDescriptor, FunctionDescriptor
from ..abi.types import ADDRESS
from ..config import BridgeConfig, load_config
from ..errors import NO_VALUE, GenerationFatal
from ..generator import AccessorKind, AccessorSpec
from .bridge import from_dynamic, log_conversion
from .builtins import BUILTINS
from .calls import CallProvider, call_function
from .logs import Block, EventDecoder, LogEntry, decode_events, events_to_dynamic
from .values import EMPTY, DynamicValue, Tag, as_dynamic

log = logging.getLogger(__name__)

__all__ = ["EventAccessor", "CallAccessor", "Registry", "build_registry"]


class EventAccessor:
    """`(block, addresses?) -> sequence | EMPTY` for one event."""

    def __init__(self, spec: AccessorSpec, *, config: Optional[BridgeConfig] = None) -> None:
        if not isinstance(spec.descriptor, EventDescriptor):
            raise TypeError(f"{spec.name} is not an event accessor")
        self.spec = spec
        self.config = config
        self._decoder = EventDecoder(spec.descriptor)

    def _filter(self, addresses: Any) -> Union[List[bytes], None, Any]:
        if addresses is None:
            return None
        if isinstance(addresses, (set, frozenset)):
            addresses = list(addresses)
        dv = as_dynamic(addresses)
        if dv is NO_VALUE:
            return NO_VALUE
        if dv.is_empty:
            return None
        items = list(dv) if dv.tag is Tag.SEQUENCE else [dv]
        out: List[bytes] = []
        for item in items:
            a = from_dynamic(item, ADDRESS)
            if a is NO_VALUE:
                return NO_VALUE
            out.append(a)
        return out

    def __call__(self, block: Union[Block, Iterable[LogEntry]], addresses: Any = None) -> DynamicValue:
        wanted = self._filter(addresses)
        if wanted is NO_VALUE:
            log_conversion(
                log, "%s: address filter %r is not a list of addresses",
                self.spec.name, addresses, config=self.config,
            )
            return EMPTY
        logs = block.logs if isinstance(block, Block) else block
        return events_to_dynamic(
            decode_events(logs, self._decoder.descriptor, wanted, decoder=self._decoder)
        )

    def __repr__(self) -> str:
        return f"<EventAccessor {self.spec.name} {self.spec.signature}>"


class CallAccessor:
    """`(address) -> value | EMPTY` for one zero-argument view/pure function."""

    def __init__(
        self,
        spec: AccessorSpec,
        caller: Optional[CallProvider],
        *,
        config: Optional[BridgeConfig] = None,
    ) -> None:
        if not isinstance(spec.descriptor, FunctionDescriptor):
            raise TypeError(f"{spec.name} is not a call accessor")
        self.spec = spec
        self.caller = caller
        self.config = config

    def __call__(self, address: Any) -> DynamicValue:
        return call_function(self.caller, self.spec.descriptor, address, config=self.config)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"<CallAccessor {self.spec.name} {self.spec.signature}>"


class Registry(Mapping[str, Callable[..., DynamicValue]]):
    """Immutable name → callable table with per-contract namespaces."""

    def __init__(self, entries: Mapping[str, Callable[..., DynamicValue]]) -> None:
        self._entries = MappingProxyType(dict(sorted(entries.items())))
        modules: Dict[str, Dict[str, Callable[..., DynamicValue]]] = {}
        for name, fn in self._entries.items():
            if "." in name:
                contract, member = name.split(".", 1)
                modules.setdefault(contract, {})[member] = fn
        self._modules = MappingProxyType({c: SimpleNamespace(**m) for c, m in modules.items()})

    def __getitem__(self, name: str) -> Callable[..., DynamicValue]:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def contracts(self) -> List[str]:
        return sorted(self._modules)

    def module(self, contract: str) -> SimpleNamespace:
        """Accessors of one contract as attributes (`module("erc20").transfer`)."""
        try:
            return self._modules[contract]
        except KeyError:
            raise KeyError(f"no accessors registered for contract {contract!r}") from None


def build_registry(
    tables: Union[Mapping[str, AccessorSpec], Iterable[Mapping[str, AccessorSpec]]],
    *,
    caller: Optional[CallProvider] = None,
    config: Optional[BridgeConfig] = None,
) -> Registry:
    """
    Bind one or more accessor tables and the builtins into a Registry.

    Without `caller`, call accessors always return EMPTY.
    """
    cfg = config or load_config()
    if isinstance(tables, Mapping):
        tables = [tables]

    entries: Dict[str, Callable[..., DynamicValue]] = dict(BUILTINS)
    for table in tables:
        for name, spec in table.items():
            if name in entries:
                raise GenerationFatal("accessor registered twice", path=name)
            if spec.kind is AccessorKind.EVENT:
                entries[name] = EventAccessor(spec, config=cfg)
            else:
                entries[name] = CallAccessor(spec, caller, config=cfg)

    if caller is None and any(isinstance(fn, CallAccessor) for fn in entries.values()):
        log.warning("no call provider configured; call accessors will return empty")
    return Registry(entries)
