"""
Host-side type projection for contract interface types.

`project()` maps a descriptor-level type string (plus tuple components) to
one of a handful of host types:

  - address            → ByteArrayType(fixed_len=20, address=True)
  - bool               → BoolType
  - string             → TextType
  - bytes / bytesN     → ByteArrayType
  - intN / uintN       → BigIntType   (width kept for signatures only)
  - T[] / T[N]         → SequenceType(project(T))
  - tuple              → TupleType(ordered (name, project(component)) fields)

The projection is pure and total over well-formed input. An unrecognized
primitive, or a tuple without components, raises `GenerationFatal`; it is
never a run-time condition.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple, Union

from ..errors import GenerationFatal

if TYPE_CHECKING:  # pragma: no cover
    from .descriptor import Param

__all__ = [
    "BigIntType",
    "ByteArrayType",
    "TextType",
    "BoolType",
    "SequenceType",
    "TupleType",
    "HostType",
    "ADDRESS",
    "project",
    "canonical_type",
    "is_hashed_in_topic",
    "param_label",
]


# ──────────────────────────────────────────────────────────────────────────────
# Host types
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BigIntType:
    bits: int = 256
    signed: bool = False

    @property
    def name(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"


@dataclass(frozen=True)
class ByteArrayType:
    fixed_len: Optional[int] = None
    address: bool = False

    @property
    def name(self) -> str:
        if self.address:
            return "address"
        if self.fixed_len is not None:
            return f"bytes{self.fixed_len}"
        return "bytes"


@dataclass(frozen=True)
class TextType:
    @property
    def name(self) -> str:
        return "string"


@dataclass(frozen=True)
class BoolType:
    @property
    def name(self) -> str:
        return "bool"


@dataclass(frozen=True)
class SequenceType:
    element: "HostType"
    length: Optional[int] = None  # fixed-size arrays keep their length

    @property
    def name(self) -> str:
        suffix = f"[{self.length}]" if self.length is not None else "[]"
        return self.element.name + suffix


@dataclass(frozen=True)
class TupleType:
    fields: Tuple[Tuple[str, "HostType"], ...]

    @property
    def name(self) -> str:
        return "(" + ",".join(t.name for _, t in self.fields) + ")"

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(n for n, _ in self.fields)


HostType = Union[BigIntType, ByteArrayType, TextType, BoolType, SequenceType, TupleType]

ADDRESS = ByteArrayType(fixed_len=20, address=True)


# ──────────────────────────────────────────────────────────────────────────────
# Parsing
# ──────────────────────────────────────────────────────────────────────────────

_TYPE_RE = re.compile(r"^(?P<base>[a-z]+[0-9]*)(?P<dims>(?:\[[0-9]*\])*)$")
_DIM_RE = re.compile(r"\[([0-9]*)\]")


def param_label(name: str, index: int) -> str:
    """Field name for a parameter; unnamed parameters are labelled by position."""
    return name if name else f"param{index}"


def _split(solidity_type: str, path: str) -> Tuple[str, List[Optional[int]]]:
    if not isinstance(solidity_type, str) or not solidity_type.strip():
        raise GenerationFatal("type must be a non-empty string", path=path)
    m = _TYPE_RE.match(solidity_type.strip())
    if m is None:
        raise GenerationFatal(f"unrecognized type {solidity_type!r}", path=path)
    dims: List[Optional[int]] = []
    for raw in _DIM_RE.findall(m.group("dims")):
        if raw == "":
            dims.append(None)
            continue
        n = int(raw)
        if n <= 0:
            raise GenerationFatal(f"array length must be positive in {solidity_type!r}", path=path)
        dims.append(n)
    return m.group("base"), dims


def _int_bits(digits: str, solidity_type: str, path: str) -> int:
    if digits == "":
        return 256
    bits = int(digits)
    if bits < 8 or bits > 256 or bits % 8 != 0:
        raise GenerationFatal(
            f"integer width must be a multiple of 8 in 8..256, got {solidity_type!r}",
            path=path,
        )
    return bits


def _project_base(
    base: str,
    components: Optional[Sequence["Param"]],
    solidity_type: str,
    path: str,
) -> "HostType":
    if base == "address":
        return ADDRESS
    if base == "bool":
        return BoolType()
    if base == "string":
        return TextType()
    if base == "bytes":
        return ByteArrayType()
    if base == "tuple":
        if not components:
            raise GenerationFatal("tuple type requires components", path=path)
        fields = tuple(
            (
                param_label(c.name, i),
                project(c.type, c.components, path=f"{path}.components[{i}]"),
            )
            for i, c in enumerate(components)
        )
        return TupleType(fields=fields)

    m = re.fullmatch(r"(u?int)([0-9]*)", base)
    if m is not None:
        return BigIntType(
            bits=_int_bits(m.group(2), solidity_type, path),
            signed=m.group(1) == "int",
        )

    m = re.fullmatch(r"bytes([0-9]+)", base)
    if m is not None:
        n = int(m.group(1))
        if n < 1 or n > 32:
            raise GenerationFatal(f"bytesN length must be in 1..32, got {solidity_type!r}", path=path)
        return ByteArrayType(fixed_len=n)

    raise GenerationFatal(f"unrecognized type {solidity_type!r}", path=path)


def project(
    solidity_type: str,
    components: Optional[Sequence["Param"]] = None,
    *,
    path: str = "",
) -> "HostType":
    """
    Project a descriptor-level type onto its host representation.

    `components` is only consulted for tuple types (including arrays of tuples).
    """
    base, dims = _split(solidity_type, path)
    host = _project_base(base, components, solidity_type, path)
    # "T[2][]" is a dynamic array of T[2]: innermost dimension comes first.
    for length in dims:
        host = SequenceType(element=host, length=length)
    return host


def canonical_type(solidity_type: str, components: Optional[Sequence["Param"]] = None) -> str:
    """
    Canonical type string as used in event signatures and by the ABI codec:
    `uint` → `uint256`, tuples expanded to `(t1,t2,…)` with array suffixes kept.
    """
    return project(solidity_type, components).name


def is_hashed_in_topic(host: "HostType") -> bool:
    """Reference types are stored as a keccak hash when indexed."""
    if isinstance(host, (TextType, SequenceType, TupleType)):
        return True
    return isinstance(host, ByteArrayType) and host.fixed_len is None
