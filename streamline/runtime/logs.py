"""
streamline.runtime.logs: match a block's logs against an event descriptor.

Matching is by layout: topic 0 must equal the event's signature hash (absent
for anonymous events), the topic count must equal the number of indexed
inputs (+1), and the data section must decode against the non-indexed input
types. The topic/data decoding itself is delegated to `eth_abi`.

A log that does not match is skipped silently; a block's logs legitimately
contain many unrelated events. Results keep block order and are never
re-sorted or de-duplicated.

Indexed inputs of reference type (string, bytes, arrays, tuples) are stored
on chain as a keccak hash, so they surface as a 32-byte array rather than
their declared type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from ..abi.descriptor import EventDescriptor
from ..abi.types import ByteArrayType, HostType, is_hashed_in_topic
from ..errors import NO_VALUE, ValidationError
from .bridge import to_dynamic
from .values import EMPTY, DynamicValue, parse_bigint, parse_hex

logger = logging.getLogger(__name__)

__all__ = [
    "LogEntry",
    "Block",
    "DecodedEvent",
    "EventDecoder",
    "decode_events",
    "events_to_dynamic",
]

TOPIC_LEN = 32
_TOPIC_HASH = ByteArrayType(fixed_len=TOPIC_LEN)


# ──────────────────────────────────────────────────────────────────────────────
# Block-side records
# ──────────────────────────────────────────────────────────────────────────────


def _rpc_bytes(obj: Mapping[str, Any], key: str) -> bytes:
    b = parse_hex(obj.get(key))
    if b is NO_VALUE:
        raise ValidationError(f"log field {key!r} must be 0x-hex", context={"field": key})
    return b


def _rpc_int(raw: Any, default: int) -> int:
    if raw is None:
        return default
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.startswith("0x"):
        return int(raw, 16)
    n = parse_bigint(raw)
    if n is NO_VALUE:
        raise ValidationError("expected an integer or 0x-quantity", context={"value": repr(raw)})
    return n


@dataclass(frozen=True)
class LogEntry:
    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes = b""
    ordinal: int = 0

    @classmethod
    def from_rpc(cls, obj: Mapping[str, Any], *, ordinal: Optional[int] = None) -> "LogEntry":
        """Build from a JSON-RPC log object (`address`, `topics`, `data`, `logIndex`)."""
        if not isinstance(obj, Mapping):
            raise ValidationError("log must be an object")
        topics = obj.get("topics")
        if not isinstance(topics, list):
            raise ValidationError("log field 'topics' must be a list")
        parsed: List[bytes] = []
        for t in topics:
            b = parse_hex(t)
            if b is NO_VALUE:
                raise ValidationError("log topic must be 0x-hex", context={"topic": repr(t)})
            parsed.append(b)
        return cls(
            address=_rpc_bytes(obj, "address"),
            topics=tuple(parsed),
            data=_rpc_bytes(obj, "data") if obj.get("data") is not None else b"",
            ordinal=ordinal if ordinal is not None else _rpc_int(obj.get("logIndex"), 0),
        )


def _position_unless_indexed(entry: Any, position: int) -> Optional[int]:
    if isinstance(entry, Mapping) and "logIndex" in entry:
        return None
    return position


@dataclass(frozen=True)
class Block:
    """The block handle scripts pass to event accessors."""

    number: int = 0
    hash: bytes = b""
    logs: Tuple[LogEntry, ...] = ()

    @classmethod
    def from_rpc(cls, obj: Mapping[str, Any]) -> "Block":
        """
        Build from `{"number", "hash", "logs": [...]}`; log ordinals default to
        their position when `logIndex` is absent.
        """
        raw_logs = obj.get("logs") or []
        if not isinstance(raw_logs, list):
            raise ValidationError("block field 'logs' must be a list")
        logs = tuple(
            LogEntry.from_rpc(entry, ordinal=_position_unless_indexed(entry, i))
            for i, entry in enumerate(raw_logs)
        )
        h = parse_hex(obj.get("hash") or "0x")
        return cls(
            number=_rpc_int(obj.get("number"), 0),
            hash=b"" if h is NO_VALUE else h,
            logs=logs,
        )


@dataclass(frozen=True)
class DecodedEvent:
    """One matched log: the event's inputs as an ordered map of dynamic values."""

    name: str
    address: bytes
    ordinal: int
    fields: DynamicValue

    def to_dynamic(self) -> DynamicValue:
        return self.fields

    def __getitem__(self, key: str) -> DynamicValue:
        return self.fields.get(key)


# ──────────────────────────────────────────────────────────────────────────────
# Decoder
# ──────────────────────────────────────────────────────────────────────────────


class EventDecoder:
    """Signature-matched decoder for one event descriptor."""

    def __init__(self, descriptor: EventDescriptor) -> None:
        self.descriptor = descriptor
        self._topic0 = descriptor.topic0
        record = descriptor.record_type

        # indexed: (position, declared host type, stored as a hash?)
        # fields:  (name, host type as surfaced to scripts)
        self._indexed: List[Tuple[int, HostType, bool]] = []
        self._data: List[int] = []
        self._fields: List[Tuple[str, HostType]] = []
        for i, ((name, host), param) in enumerate(zip(record.fields, descriptor.inputs)):
            if param.indexed:
                hashed = is_hashed_in_topic(host)
                self._indexed.append((i, host, hashed))
                self._fields.append((name, _TOPIC_HASH if hashed else host))
            else:
                self._data.append(i)
                self._fields.append((name, host))
        self._data_types = [record.fields[i][1].name for i in self._data]
        self._topic_count = len(self._indexed) + (0 if descriptor.anonymous else 1)

    def matches(self, log: LogEntry) -> bool:
        if len(log.topics) != self._topic_count:
            return False
        if self._topic0 is not None and bytes(log.topics[0]) != self._topic0:
            return False
        return True

    def decode(self, log: LogEntry) -> Optional[DecodedEvent]:
        """Decode `log`, or None if it is not an instance of this event."""
        if not self.matches(log):
            return None

        values: List[Any] = [None] * len(self._fields)
        topics = log.topics if self._topic0 is None else log.topics[1:]
        try:
            for (i, host, hashed), topic in zip(self._indexed, topics):
                topic = bytes(topic)
                if len(topic) != TOPIC_LEN:
                    return None
                values[i] = topic if hashed else abi_decode([host.name], topic)[0]

            for i, v in zip(self._data, abi_decode(self._data_types, bytes(log.data))):
                values[i] = v

            fields = DynamicValue.mapping(
                (name, to_dynamic(v, host)) for (name, host), v in zip(self._fields, values)
            )
        except (DecodingError, ValueError) as e:
            # ValueError covers ValidationError from the bridge and bad UTF-8
            logger.debug(
                "log %d does not decode as %s: %s", log.ordinal, self.descriptor.signature, e
            )
            return None

        return DecodedEvent(
            name=self.descriptor.name,
            address=bytes(log.address),
            ordinal=log.ordinal,
            fields=fields,
        )


def decode_events(
    logs: Iterable[LogEntry],
    descriptor: EventDescriptor,
    address_filter: Optional[Iterable[bytes]] = None,
    *,
    decoder: Optional[EventDecoder] = None,
) -> List[DecodedEvent]:
    """
    Decode every log in `logs` that is an instance of `descriptor`, in order.

    With `address_filter`, only logs emitted by one of those addresses are
    kept (an empty filter keeps nothing).
    """
    dec = decoder or EventDecoder(descriptor)
    wanted = None if address_filter is None else frozenset(bytes(a) for a in address_filter)
    out: List[DecodedEvent] = []
    for log in logs:
        if wanted is not None and bytes(log.address) not in wanted:
            continue
        ev = dec.decode(log)
        if ev is not None:
            out.append(ev)
    return out


def events_to_dynamic(events: Sequence[DecodedEvent]) -> DynamicValue:
    """Zero matches → EMPTY; otherwise a sequence of field maps."""
    if not events:
        return EMPTY
    return DynamicValue.sequence(ev.to_dynamic() for ev in events)

