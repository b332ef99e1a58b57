"""
streamline.runtime.bridge: typed values ↔ dynamic values, driven by host types.

    to_dynamic(value, host)    typed Python value → DynamicValue
    from_dynamic(value, host)  DynamicValue (or plain Python) → typed value | NO_VALUE

Conversion table:

    host type        typed side                  dynamic side
    ---------------  --------------------------  ------------------------------
    BigIntType       int                         integer ("1000", "-5")
    ByteArrayType    bytes (or 0x-hex str)       bytes   ("0xdeadbeef")
    TextType         str                         text
    BoolType         bool                        bool
    SequenceType     list / tuple                sequence (element-wise)
    TupleType        tuple (positional)          map keyed by field name,
                     or mapping by field name    declaration order

`to_dynamic` is strict: a typed value that does not fit its host type raises
ValidationError (the caller produced it, so a mismatch is a decode failure).
`from_dynamic` never raises on a shape mismatch; it returns NO_VALUE.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from ..abi.types import (BigIntType, BoolType, ByteArrayType, HostType,
                         SequenceType, TextType, TupleType)
from ..config import BridgeConfig, load_config
from ..errors import NO_VALUE, ValidationError
from .values import DynamicValue, Tag, as_dynamic, parse_bigint, parse_hex

__all__ = ["to_dynamic", "from_dynamic", "log_conversion"]


def log_conversion(
    logger: logging.Logger, msg: str, *args: Any, config: Optional[BridgeConfig] = None
) -> None:
    """Report a value that was turned into the null value (or a no-op)."""
    cfg = config or load_config()
    level = logging.WARNING if cfg.log_conversions else logging.DEBUG
    logger.log(level, msg, *args)


# ──────────────────────────────────────────────────────────────────────────────
# typed → dynamic
# ──────────────────────────────────────────────────────────────────────────────


def _fail(host: HostType, value: Any, why: str) -> ValidationError:
    return ValidationError(
        f"cannot convert {type(value).__name__} to {host.name}: {why}",
        context={"host_type": host.name, "py_type": type(value).__name__},
    )


def _bytes_in(value: Any, host: ByteArrayType) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
    elif isinstance(value, str):
        # the ABI codec hands addresses back as checksummed hex strings
        parsed = parse_hex(value)
        if parsed is NO_VALUE:
            raise _fail(host, value, "not a 0x-hex string")
        b = parsed
    else:
        raise _fail(host, value, "not bytes")
    if host.fixed_len is not None and len(b) != host.fixed_len:
        raise _fail(host, value, f"length {len(b)} != {host.fixed_len}")
    return b


def to_dynamic(value: Any, host: HostType) -> DynamicValue:
    if isinstance(host, BigIntType):
        if isinstance(value, bool) or not isinstance(value, int):
            raise _fail(host, value, "not an int")
        return DynamicValue.integer(value)

    if isinstance(host, ByteArrayType):
        return DynamicValue.byte_array(_bytes_in(value, host))

    if isinstance(host, TextType):
        if not isinstance(value, str):
            raise _fail(host, value, "not a str")
        return DynamicValue.text(value)

    if isinstance(host, BoolType):
        if not isinstance(value, bool):
            raise _fail(host, value, "not a bool")
        return DynamicValue.boolean(value)

    if isinstance(host, SequenceType):
        if not isinstance(value, (list, tuple)):
            raise _fail(host, value, "not a sequence")
        if host.length is not None and len(value) != host.length:
            raise _fail(host, value, f"length {len(value)} != {host.length}")
        return DynamicValue.sequence(to_dynamic(v, host.element) for v in value)

    if isinstance(host, TupleType):
        if isinstance(value, Mapping):
            missing = [n for n in host.field_names if n not in value]
            if missing:
                raise _fail(host, value, f"missing fields {missing}")
            values = [value[n] for n in host.field_names]
        elif isinstance(value, (list, tuple)):
            if len(value) != len(host.fields):
                raise _fail(host, value, f"arity {len(value)} != {len(host.fields)}")
            values = list(value)
        else:
            raise _fail(host, value, "not a tuple")
        return DynamicValue.mapping(
            (name, to_dynamic(v, t)) for (name, t), v in zip(host.fields, values)
        )

    raise ValidationError(f"unsupported host type {host!r}")


# ──────────────────────────────────────────────────────────────────────────────
# dynamic → typed
# ──────────────────────────────────────────────────────────────────────────────


def from_dynamic(value: Any, host: HostType) -> Any:
    """
    Convert a dynamic value to the typed shape `host` expects, or NO_VALUE.

    Plain Python values are accepted too and go through `as_dynamic` first,
    so a script host may pass either representation.
    """
    dv = as_dynamic(value)
    if dv is NO_VALUE:
        return NO_VALUE

    if isinstance(host, BigIntType):
        if dv.tag in (Tag.INTEGER, Tag.TEXT):
            return parse_bigint(dv.payload)
        return NO_VALUE

    if isinstance(host, ByteArrayType):
        if dv.tag not in (Tag.BYTES, Tag.TEXT):
            return NO_VALUE
        b = parse_hex(dv.payload)
        if b is NO_VALUE:
            return NO_VALUE
        if host.fixed_len is not None and len(b) != host.fixed_len:
            return NO_VALUE
        return b

    if isinstance(host, TextType):
        return dv.payload if dv.tag is Tag.TEXT else NO_VALUE

    if isinstance(host, BoolType):
        return dv.payload if dv.tag is Tag.BOOL else NO_VALUE

    if isinstance(host, SequenceType):
        if dv.tag is not Tag.SEQUENCE:
            return NO_VALUE
        if host.length is not None and len(dv.payload) != host.length:
            return NO_VALUE
        out: List[Any] = []
        for item in dv.payload:
            v = from_dynamic(item, host.element)
            if v is NO_VALUE:
                return NO_VALUE
            out.append(v)
        return out

    if isinstance(host, TupleType):
        if dv.tag is not Tag.MAP:
            return NO_VALUE
        fields = dict(dv.payload)
        typed: List[Any] = []
        for name, t in host.fields:
            if name not in fields:
                return NO_VALUE
            v = from_dynamic(fields[name], t)
            if v is NO_VALUE:
                return NO_VALUE
            typed.append(v)
        return tuple(typed)

    return NO_VALUE
