"""
streamline.runtime.values: the script-facing dynamic value model.

A `DynamicValue` is an explicit tagged variant:

    tag        payload
    ---------  ---------------------------------------------------------
    null       None                                   (the empty/unit value)
    bool       bool
    integer    canonical base-10 string  ("-12", "0", "1000")
    text       str
    bytes      canonical hex string      ("0x" + lowercase hex)
    sequence   tuple[DynamicValue, ...]
    map        tuple[(str, DynamicValue), ...]   (insertion ordered)

Arbitrary-precision integers and byte arrays never travel as host objects;
they are carried in their canonical text forms so that every value the
script sees can be printed, compared and stored without host types.

Canonical forms
---------------
- BigInt:   optional leading "-", no leading zeros except "0", no "+", no "-0"
- ByteArray: "0x" followed by an even number of lowercase hex digits
- Address:  a ByteArray of exactly 20 bytes, same hex form

All parsers here return the `NO_VALUE` sentinel on malformed input instead of
raising; callers decide whether that becomes the null value or a no-op.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Tuple, Union

from ..errors import NO_VALUE, ValidationError

__all__ = [
    "Tag",
    "DynamicValue",
    "EMPTY",
    "ADDRESS_LEN",
    "bigint_to_string",
    "parse_bigint",
    "bytes_to_hex",
    "parse_hex",
    "to_address_string",
    "as_dynamic",
]

ADDRESS_LEN = 20

_BIGINT_RE = re.compile(r"^(?:0|-?[1-9][0-9]*)$")
_HEX_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")


class Tag(str, Enum):
    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    TEXT = "text"
    BYTES = "bytes"
    SEQUENCE = "sequence"
    MAP = "map"


# ──────────────────────────────────────────────────────────────────────────────
# Canonical encodings
# ──────────────────────────────────────────────────────────────────────────────


def bigint_to_string(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("bigint must be an int", context={"py_type": type(value).__name__})
    return str(value)


def parse_bigint(text: Any) -> Union[int, Any]:
    """Canonical decimal string → int, or NO_VALUE."""
    if not isinstance(text, str) or not _BIGINT_RE.match(text):
        return NO_VALUE
    return int(text, 10)


def bytes_to_hex(value: Union[bytes, bytearray, memoryview]) -> str:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValidationError("byte array must be bytes-like", context={"py_type": type(value).__name__})
    return "0x" + bytes(value).hex()


def parse_hex(text: Any) -> Union[bytes, Any]:
    """0x-prefixed hex (either case) → bytes, or NO_VALUE."""
    if not isinstance(text, str) or not _HEX_RE.match(text):
        return NO_VALUE
    return bytes.fromhex(text[2:])


def to_address_string(value: Any) -> Union[str, Any]:
    """20-byte array → canonical hex; any other length or kind → NO_VALUE."""
    if not isinstance(value, (bytes, bytearray, memoryview)):
        return NO_VALUE
    b = bytes(value)
    if len(b) != ADDRESS_LEN:
        return NO_VALUE
    return bytes_to_hex(b)


# ──────────────────────────────────────────────────────────────────────────────
# DynamicValue
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DynamicValue:
    tag: Tag
    payload: Any = None

    def __post_init__(self) -> None:
        t, p = self.tag, self.payload
        ok = (
            (t is Tag.NULL and p is None)
            or (t is Tag.BOOL and isinstance(p, bool))
            or (t is Tag.INTEGER and isinstance(p, str) and bool(_BIGINT_RE.match(p)))
            or (t is Tag.TEXT and isinstance(p, str))
            or (t is Tag.BYTES and isinstance(p, str) and bool(_HEX_RE.match(p)) and p == p.lower())
            or (t is Tag.SEQUENCE and isinstance(p, tuple) and all(isinstance(v, DynamicValue) for v in p))
            or (
                t is Tag.MAP
                and isinstance(p, tuple)
                and all(
                    isinstance(kv, tuple) and len(kv) == 2 and isinstance(kv[0], str) and isinstance(kv[1], DynamicValue)
                    for kv in p
                )
            )
        )
        if not ok:
            raise ValidationError(
                f"payload does not match tag {t.value!r}",
                context={"tag": t.value, "py_type": type(p).__name__},
            )

    # --- constructors -------------------------------------------------------

    @classmethod
    def null(cls) -> "DynamicValue":
        return EMPTY

    @classmethod
    def boolean(cls, value: bool) -> "DynamicValue":
        return cls(Tag.BOOL, bool(value))

    @classmethod
    def integer(cls, value: int) -> "DynamicValue":
        return cls(Tag.INTEGER, bigint_to_string(value))

    @classmethod
    def text(cls, value: str) -> "DynamicValue":
        return cls(Tag.TEXT, value)

    @classmethod
    def byte_array(cls, value: Union[bytes, bytearray, memoryview]) -> "DynamicValue":
        return cls(Tag.BYTES, bytes_to_hex(value))

    @classmethod
    def sequence(cls, items: Iterable["DynamicValue"]) -> "DynamicValue":
        return cls(Tag.SEQUENCE, tuple(items))

    @classmethod
    def mapping(cls, pairs: Union[Mapping[str, "DynamicValue"], Iterable[Tuple[str, "DynamicValue"]]]) -> "DynamicValue":
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        # dict keeps the first insertion position of a repeated key
        return cls(Tag.MAP, tuple(dict(items).items()))

    # --- inspection ---------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return self.tag is Tag.NULL

    def __bool__(self) -> bool:
        return not self.is_empty

    def __len__(self) -> int:
        if self.tag in (Tag.SEQUENCE, Tag.MAP):
            return len(self.payload)
        return 0

    def __iter__(self) -> Iterator["DynamicValue"]:
        if self.tag is Tag.SEQUENCE:
            return iter(self.payload)
        if self.tag is Tag.MAP:
            return iter(v for _, v in self.payload)
        return iter(())

    def keys(self) -> Tuple[str, ...]:
        if self.tag is not Tag.MAP:
            return ()
        return tuple(k for k, _ in self.payload)

    def items(self) -> Tuple[Tuple[str, "DynamicValue"], ...]:
        if self.tag is not Tag.MAP:
            return ()
        return self.payload

    def get(self, key: Union[str, int]) -> "DynamicValue":
        """Index a map by name or a sequence by position; missing → EMPTY."""
        if self.tag is Tag.MAP and isinstance(key, str):
            for k, v in self.payload:
                if k == key:
                    return v
            return EMPTY
        if self.tag is Tag.SEQUENCE and isinstance(key, int) and not isinstance(key, bool):
            if -len(self.payload) <= key < len(self.payload):
                return self.payload[key]
        return EMPTY

    __getitem__ = get

    # --- conversions out ----------------------------------------------------

    def to_plain(self) -> Any:
        """JSON-friendly form: integers and byte arrays stay in their canonical strings."""
        if self.tag is Tag.SEQUENCE:
            return [v.to_plain() for v in self.payload]
        if self.tag is Tag.MAP:
            return {k: v.to_plain() for k, v in self.payload}
        return self.payload

    def to_python(self) -> Any:
        """Typed form: integer → int, bytes → bytes, containers → list/dict."""
        if self.tag is Tag.INTEGER:
            return int(self.payload, 10)
        if self.tag is Tag.BYTES:
            return bytes.fromhex(self.payload[2:])
        if self.tag is Tag.SEQUENCE:
            return [v.to_python() for v in self.payload]
        if self.tag is Tag.MAP:
            return {k: v.to_python() for k, v in self.payload}
        return self.payload

    # --- conversions in -----------------------------------------------------

    @classmethod
    def from_python(cls, obj: Any) -> "DynamicValue":
        """
        Inverse of `to_python`. Raises ValidationError on values with no
        dynamic counterpart (floats, sets, arbitrary objects, non-str keys).
        """
        if isinstance(obj, DynamicValue):
            return obj
        if obj is None:
            return EMPTY
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.byte_array(obj)
        if isinstance(obj, Mapping):
            pairs = []
            for k, v in obj.items():
                if not isinstance(k, str):
                    raise ValidationError("map keys must be str", context={"py_type": type(k).__name__})
                pairs.append((k, cls.from_python(v)))
            return cls.mapping(pairs)
        if isinstance(obj, (list, tuple)):
            return cls.sequence(cls.from_python(v) for v in obj)
        raise ValidationError(
            "value has no dynamic representation",
            context={"py_type": type(obj).__name__},
        )


EMPTY = DynamicValue(Tag.NULL)


def as_dynamic(obj: Any) -> Union[DynamicValue, Any]:
    """Non-raising `from_python`: DynamicValue, or NO_VALUE."""
    try:
        return DynamicValue.from_python(obj)
    except ValidationError:
        return NO_VALUE
