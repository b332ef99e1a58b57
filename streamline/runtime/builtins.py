"""
Script builtins registered next to the generated accessors.

    address(value)  20-byte array (or 0x-hex text of 20 bytes) → "0x…" text, else EMPTY
    uint(value)     integer → its decimal text; decimal text → integer; else EMPTY
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from ..abi.types import ByteArrayType
from ..errors import NO_VALUE
from .bridge import from_dynamic
from .values import EMPTY, DynamicValue, Tag, as_dynamic, parse_bigint, to_address_string

__all__ = ["address", "uint", "BUILTINS"]

_ANY_BYTES = ByteArrayType()


def address(value: Any) -> DynamicValue:
    s = to_address_string(from_dynamic(value, _ANY_BYTES))
    return EMPTY if s is NO_VALUE else DynamicValue.text(s)


def uint(value: Any) -> DynamicValue:
    dv = as_dynamic(value)
    if dv is NO_VALUE:
        return EMPTY
    if dv.tag is Tag.INTEGER:
        return DynamicValue.text(dv.payload)
    if dv.tag is Tag.TEXT:
        n = parse_bigint(dv.payload)
        return EMPTY if n is NO_VALUE else DynamicValue.integer(n)
    return EMPTY


BUILTINS: Dict[str, Callable[[Any], DynamicValue]] = {
    "address": address,
    "uint": uint,
}
