"""
streamline.runtime.store: versioned key/value store accessors and delta projection.

Layers
------
- `StoreBackend`: bytes-in/bytes-out protocol the host implements. Every
  mutation carries an ordinal and yields a `StoreDelta` record.
- `MemoryStore`: in-process backend for local runs and tests. Holds the
  committed state plus the deltas pending for the current block.
- `OrdinalClock`: one per block evaluation, shared by every store accessor,
  so ordinals are strictly increasing in call order across all stores.
  Accessors also never tick at or below the backend's `last_ordinal`, so
  accessors built with separate clocks on one store stay ordered.
- `StoreSet` / `StoreSetOnce` / `StoreGet` / `StoreDeltas`: the capability
  sets bound into the script environment. They take and return dynamic
  values and never raise into the script: a key or value that cannot be
  converted makes the call a logged no-op (writes) or EMPTY (reads).

Values are persisted as CBOR (`cbor2`) of their typed form, so integers and
byte arrays survive a write/read cycle unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

import cbor2

from ..config import BridgeConfig, load_config
from ..errors import NO_VALUE, StreamlineError, ValidationError
from .bridge import log_conversion
from .values import EMPTY, DynamicValue, Tag, as_dynamic

log = logging.getLogger(__name__)

__all__ = [
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
    "encode_value",
    "decode_value",
]


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class StoreDelta:
    operation: Operation
    ordinal: int
    key: str
    old_value: Optional[bytes]
    new_value: Optional[bytes]


# ---------------------------- Backend API ---------------------------- #


@runtime_checkable
class StoreBackend(Protocol):
    """Minimal backend interface for a versioned store."""

    def get_last(self, key: str) -> Optional[bytes]: ...
    def get_first(self, key: str) -> Optional[bytes]: ...
    def set(self, ordinal: int, key: str, value: bytes) -> None: ...
    def set_if_not_exists(self, ordinal: int, key: str, value: bytes) -> bool: ...
    def delete(self, ordinal: int, key: str) -> None: ...
    def keys(self, prefix: str) -> List[str]: ...
    def deltas(self) -> List[StoreDelta]: ...

    @property
    def last_ordinal(self) -> int: ...


class MemoryStore:
    """In-memory `StoreBackend`: committed state plus this block's deltas."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._committed: Dict[str, bytes] = dict(initial or {})
        self._live: Dict[str, bytes] = dict(self._committed)
        self._pending: List[StoreDelta] = []
        self._last_ordinal = 0

    @property
    def last_ordinal(self) -> int:
        """Highest ordinal handed to this store in the current block, 0 if none."""
        return self._last_ordinal

    def _seen(self, ordinal: int) -> None:
        self._last_ordinal = max(self._last_ordinal, ordinal)

    def _record(self, op: Operation, ordinal: int, key: str, old: Optional[bytes], new: Optional[bytes]) -> None:
        if self._pending and ordinal <= self._pending[-1].ordinal:
            raise StreamlineError(
                "store ordinals must be strictly increasing",
                code="ordinal_regression",
                context={"ordinal": ordinal, "last": self._pending[-1].ordinal},
            )
        self._seen(ordinal)
        self._pending.append(StoreDelta(op, ordinal, key, old, new))

    def get_last(self, key: str) -> Optional[bytes]:
        return self._live.get(key)

    def get_first(self, key: str) -> Optional[bytes]:
        for d in self._pending:
            if d.key == key:
                return d.new_value if d.operation is Operation.CREATE else d.old_value
        return self._committed.get(key)

    def set(self, ordinal: int, key: str, value: bytes) -> None:
        old = self._live.get(key)
        op = Operation.CREATE if old is None else Operation.UPDATE
        self._record(op, ordinal, key, old, value)
        self._live[key] = value

    def set_if_not_exists(self, ordinal: int, key: str, value: bytes) -> bool:
        if key in self._live:
            self._seen(ordinal)
            return False
        self.set(ordinal, key, value)
        return True

    def delete(self, ordinal: int, key: str) -> None:
        old = self._live.pop(key, None)
        if old is None:
            self._seen(ordinal)
        else:
            self._record(Operation.DELETE, ordinal, key, old, None)

    def keys(self, prefix: str) -> List[str]:
        return sorted(k for k in self._live if k.startswith(prefix))

    def deltas(self) -> List[StoreDelta]:
        return list(self._pending)

    def commit(self) -> List[StoreDelta]:
        """Fold the pending deltas into the committed state; return them."""
        done = self._pending
        self._committed = dict(self._live)
        self._pending = []
        self._last_ordinal = 0
        return done

    def snapshot(self) -> Dict[str, bytes]:
        return dict(self._live)


class OrdinalClock:
    """Monotonic ordinal source for one block evaluation."""

    def __init__(self, start: int = 1) -> None:
        self._next = start

    def tick(self, after: int = 0) -> int:
        """Next ordinal, never at or below `after`."""
        n = self._next = max(self._next, after + 1)
        self._next += 1
        return n

    @property
    def last(self) -> int:
        return self._next - 1


# --------------------------- Value encoding --------------------------- #


def encode_value(value: DynamicValue) -> bytes:
    return cbor2.dumps(value.to_python())


def decode_value(raw: Optional[bytes]) -> DynamicValue:
    """Stored bytes → dynamic value; absent or undecodable → EMPTY."""
    if raw is None:
        return EMPTY
    try:
        return DynamicValue.from_python(cbor2.loads(raw))
    except (cbor2.CBORDecodeError, ValidationError) as e:
        log.warning("stored value does not decode (%d bytes): %s", len(raw), e)
        return EMPTY


# --------------------------- Script accessors --------------------------- #


class _StoreAccessor:
    def __init__(
        self,
        store: StoreBackend,
        clock: Optional[OrdinalClock] = None,
        *,
        config: Optional[BridgeConfig] = None,
    ) -> None:
        self.store = store
        self.clock = clock or OrdinalClock()
        self.config = config or load_config()

    def _text(self, raw: Any, what: str) -> Optional[str]:
        dv = as_dynamic(raw)
        if dv is NO_VALUE or dv.tag is not Tag.TEXT:
            log_conversion(log, "store %s %r is not a string; ignored", what, raw, config=self.config)
            return None
        return dv.payload

    def _tick(self) -> int:
        return self.clock.tick(after=self.store.last_ordinal)

    def _key(self, raw: Any, action: str = "write") -> Optional[str]:
        key = self._text(raw, "key")
        if key is None:
            return None
        size = len(key.encode("utf-8"))
        if size == 0 or size > self.config.max_store_key_bytes:
            log_conversion(log, "store key of %d bytes out of range; %s dropped", size, action, config=self.config)
            return None
        return key

    def _value(self, raw: Any) -> Optional[bytes]:
        dv = as_dynamic(raw)
        if dv is NO_VALUE or dv.is_empty:
            log_conversion(log, "store value %r has no stored form; write dropped", raw, config=self.config)
            return None
        data = encode_value(dv)
        if len(data) > self.config.max_store_value_bytes:
            log_conversion(log, "store value of %d bytes over cap; write dropped", len(data), config=self.config)
            return None
        return data

    def _keys(self, raw: Any) -> List[str]:
        dv = as_dynamic(raw)
        if dv is NO_VALUE or dv.tag is not Tag.SEQUENCE:
            log_conversion(log, "store keys %r are not a sequence; ignored", raw, config=self.config)
            return []
        return [k for k in (self._key(item) for item in dv) if k is not None]

    def delete_prefix(self, prefix: Any) -> None:
        p = self._text(prefix, "prefix")
        if p is None:
            return
        for key in self.store.keys(p):
            self.store.delete(self._tick(), key)


class StoreSet(_StoreAccessor):
    """set / set_many / delete_prefix."""

    def set(self, key: Any, value: Any) -> None:
        k, v = self._key(key), self._value(value)
        if k is None or v is None:
            return
        self.store.set(self._tick(), k, v)

    def set_many(self, keys: Any, value: Any) -> None:
        v = self._value(value)
        if v is None:
            return
        for k in self._keys(keys):
            self.store.set(self._tick(), k, v)


class StoreSetOnce(_StoreAccessor):
    """set_if_not_exists / set_if_not_exists_many / delete_prefix."""

    def set_if_not_exists(self, key: Any, value: Any) -> None:
        k, v = self._key(key), self._value(value)
        if k is None or v is None:
            return
        self.store.set_if_not_exists(self._tick(), k, v)

    def set_if_not_exists_many(self, keys: Any, value: Any) -> None:
        v = self._value(value)
        if v is None:
            return
        for k in self._keys(keys):
            self.store.set_if_not_exists(self._tick(), k, v)


class StoreGet(_StoreAccessor):
    """get / get_first."""

    def get(self, key: Any) -> DynamicValue:
        k = self._key(key, "read")
        return EMPTY if k is None else decode_value(self.store.get_last(k))

    def get_first(self, key: Any) -> DynamicValue:
        k = self._key(key, "read")
        return EMPTY if k is None else decode_value(self.store.get_first(k))


def _delta_to_dynamic(d: StoreDelta) -> DynamicValue:
    return DynamicValue.mapping(
        [
            ("operation", DynamicValue.text(d.operation.value)),
            ("ordinal", DynamicValue.integer(d.ordinal)),
            ("key", DynamicValue.text(d.key)),
            ("oldValue", decode_value(d.old_value)),
            ("newValue", decode_value(d.new_value)),
        ]
    )


def project_deltas(deltas: Iterable[StoreDelta]) -> DynamicValue:
    """Delta records → sequence of maps, in ordinal order."""
    return DynamicValue.sequence(_delta_to_dynamic(d) for d in sorted(deltas, key=lambda d: d.ordinal))


class StoreDeltas:
    """Read side of a store output: its deltas as dynamic values."""

    def __init__(self, store: StoreBackend) -> None:
        self.store = store

    def deltas(self) -> DynamicValue:
        return project_deltas(self.store.deltas())
