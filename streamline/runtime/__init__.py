"""
Streamline runtime bridge

Everything a script touches at block-processing time:

    from streamline.runtime import Block, build_registry, DynamicValue, EMPTY
    from streamline.runtime import MemoryStore, OrdinalClock, StoreSet, StoreGet

Notes
-----
- No call made through this package raises into a script; failures surface
  as the null dynamic value `EMPTY` (or a dropped store write).
- Accessor calls are synchronous and single-threaded; store ordinals follow
  call order.
"""

from __future__ import annotations

from ..version import __version__  # re-export
from . import bridge as bridge
from . import builtins as builtins
from .calls import CallProvider, JsonRpcCaller, call_function
from .logs import Block, DecodedEvent, EventDecoder, LogEntry, decode_events, events_to_dynamic
from .registry import CallAccessor, EventAccessor, Registry, build_registry
from .store import (MemoryStore, Operation, OrdinalClock, StoreBackend,
                    StoreDelta, StoreDeltas, StoreGet, StoreSet, StoreSetOnce,
                    project_deltas)
from .values import EMPTY, DynamicValue, Tag

__all__ = [
    "__version__",
    "bridge",
    "builtins",
    # values
    "DynamicValue",
    "Tag",
    "EMPTY",
    # logs
    "LogEntry",
    "Block",
    "DecodedEvent",
    "EventDecoder",
    "decode_events",
    "events_to_dynamic",
    # calls
    "CallProvider",
    "JsonRpcCaller",
    "call_function",
    # store
    "Operation",
    "StoreDelta",
    "StoreBackend",
    "MemoryStore",
    "OrdinalClock",
    "StoreSet",
    "StoreSetOnce",
    "StoreGet",
    "StoreDeltas",
    "project_deltas",
    # registry
    "EventAccessor",
    "CallAccessor",
    "Registry",
    "build_registry",
]
