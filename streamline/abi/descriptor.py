"""
Parsed contract interface descriptors (ABI JSON → immutable model).

Descriptor objects are validated field by field as they are parsed. Any
missing or wrong-typed field raises `GenerationFatal` whose `path` points at
the offending field, e.g. ``erc20[3].inputs[1].components[0].type``. Nothing
here is lenient: a partially understood descriptor would otherwise produce a
partially specified accessor.

Descriptor `type`s other than "event" and "function" that the ABI format
defines (constructor, fallback, receive, error) are accepted and skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import msgspec

from ..errors import GenerationFatal
from .signature import selector, signature, topic0
from .types import HostType, TupleType, param_label, project

__all__ = [
    "Param",
    "EventDescriptor",
    "FunctionDescriptor",
    "ContractInterface",
    "READ_ONLY_MUTABILITY",
    "parse_interface",
    "load_interface",
    "load_interfaces",
]

READ_ONLY_MUTABILITY = frozenset({"view", "pure"})
_MUTABILITY = frozenset({"view", "pure", "nonpayable", "payable"})
_IGNORED_KINDS = frozenset({"constructor", "fallback", "receive", "error"})
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ──────────────────────────────────────────────────────────────────────────────
# Model
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    components: Optional[Tuple["Param", ...]] = None
    indexed: bool = False
    host: Optional[HostType] = field(default=None, compare=False, repr=False)


def _fields_type(params: Sequence[Param]) -> TupleType:
    return TupleType(
        fields=tuple((param_label(p.name, i), p.host) for i, p in enumerate(params))  # type: ignore[misc]
    )


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    inputs: Tuple[Param, ...]
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return signature(self.name, self.inputs)

    @property
    def topic0(self) -> Optional[bytes]:
        """Signature hash in topic 0; anonymous events have none."""
        if self.anonymous:
            return None
        return topic0(self.signature)

    @property
    def record_type(self) -> TupleType:
        return _fields_type(self.inputs)


@dataclass(frozen=True)
class FunctionDescriptor:
    name: str
    inputs: Tuple[Param, ...]
    outputs: Tuple[Param, ...]
    mutability: str

    @property
    def read_only(self) -> bool:
        return self.mutability in READ_ONLY_MUTABILITY

    @property
    def signature(self) -> str:
        return signature(self.name, self.inputs)

    @property
    def selector(self) -> bytes:
        return selector(self.signature)

    @property
    def output_type(self) -> TupleType:
        return _fields_type(self.outputs)


@dataclass(frozen=True)
class ContractInterface:
    name: str
    events: Tuple[EventDescriptor, ...] = ()
    functions: Tuple[FunctionDescriptor, ...] = ()


# ──────────────────────────────────────────────────────────────────────────────
# Field readers
# ──────────────────────────────────────────────────────────────────────────────


def _require_mapping(obj: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise GenerationFatal("descriptor must be an object", path=path)
    return obj


def _require_str(obj: Mapping[str, Any], key: str, path: str, *, allow_empty: bool = False) -> str:
    if key not in obj:
        raise GenerationFatal(f"missing required field {key!r}", path=path)
    val = obj[key]
    if not isinstance(val, str):
        raise GenerationFatal(f"field {key!r} must be a string", path=f"{path}.{key}")
    if not val and not allow_empty:
        raise GenerationFatal(f"field {key!r} must be non-empty", path=f"{path}.{key}")
    return val


def _require_ident(obj: Mapping[str, Any], key: str, path: str) -> str:
    val = _require_str(obj, key, path)
    if not _IDENT_RE.match(val):
        raise GenerationFatal(f"{key} {val!r} is not an identifier", path=f"{path}.{key}")
    return val


def _optional_bool(obj: Mapping[str, Any], key: str, path: str) -> bool:
    val = obj.get(key, False)
    if not isinstance(val, bool):
        raise GenerationFatal(f"field {key!r} must be a boolean", path=f"{path}.{key}")
    return val


def _param(obj: Any, path: str) -> Param:
    m = _require_mapping(obj, path)
    name = m.get("name", "")
    if not isinstance(name, str):
        raise GenerationFatal("param name must be a string", path=f"{path}.name")
    typ = _require_str(m, "type", path)

    components: Optional[Tuple[Param, ...]] = None
    if "components" in m:
        components = _params(m, "components", path)

    host = project(typ, components, path=f"{path}.type")
    return Param(
        name=name,
        type=typ,
        components=components,
        indexed=_optional_bool(m, "indexed", path),
        host=host,
    )


def _params(obj: Mapping[str, Any], key: str, path: str) -> Tuple[Param, ...]:
    if key not in obj:
        raise GenerationFatal(f"missing required field {key!r}", path=path)
    raw = obj[key]
    if not isinstance(raw, list):
        raise GenerationFatal(f"field {key!r} must be a list", path=f"{path}.{key}")
    params = tuple(_param(p, f"{path}.{key}[{i}]") for i, p in enumerate(raw))
    # decoded records are keyed by label; an unnamed param's positional label counts
    seen = set()
    for i, p in enumerate(params):
        label = param_label(p.name, i)
        if label in seen:
            raise GenerationFatal(f"duplicate field label {label!r}", path=f"{path}.{key}[{i}].name")
        seen.add(label)
    return params


def _mutability(obj: Mapping[str, Any], path: str) -> str:
    if "stateMutability" in obj:
        val = _require_str(obj, "stateMutability", path)
        if val not in _MUTABILITY:
            raise GenerationFatal(
                f"unknown stateMutability {val!r}", path=f"{path}.stateMutability"
            )
        return val
    # Pre-0.4.16 descriptors only carry constant/payable flags.
    if _optional_bool(obj, "constant", path):
        return "view"
    if _optional_bool(obj, "payable", path):
        return "payable"
    return "nonpayable"


def _event(obj: Mapping[str, Any], path: str) -> EventDescriptor:
    return EventDescriptor(
        name=_require_ident(obj, "name", path),
        inputs=_params(obj, "inputs", path),
        anonymous=_optional_bool(obj, "anonymous", path),
    )


def _function(obj: Mapping[str, Any], path: str) -> FunctionDescriptor:
    return FunctionDescriptor(
        name=_require_ident(obj, "name", path),
        inputs=_params(obj, "inputs", path),
        outputs=_params(obj, "outputs", path),
        mutability=_mutability(obj, path),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Public entrypoints
# ──────────────────────────────────────────────────────────────────────────────


def parse_interface(name: str, items: Any) -> ContractInterface:
    """
    Parse an ordered sequence of descriptor objects into a ContractInterface.

    Raises GenerationFatal on the first malformed field.
    """
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise GenerationFatal(f"contract name {name!r} is not an identifier", path=str(name))
    if not isinstance(items, list):
        raise GenerationFatal("interface descriptor must be a list of objects", path=name)

    events: List[EventDescriptor] = []
    functions: List[FunctionDescriptor] = []
    for i, raw in enumerate(items):
        path = f"{name}[{i}]"
        obj = _require_mapping(raw, path)
        kind = _require_str(obj, "type", path)
        if kind == "event":
            events.append(_event(obj, path))
        elif kind == "function":
            functions.append(_function(obj, path))
        elif kind not in _IGNORED_KINDS:
            raise GenerationFatal(f"unknown descriptor type {kind!r}", path=f"{path}.type")

    return ContractInterface(name=name, events=tuple(events), functions=tuple(functions))


def load_interface(path: Union[str, Path], *, name: Optional[str] = None) -> ContractInterface:
    """
    Load one ABI JSON file. Accepts a bare descriptor list or an artifact
    object carrying an "abi" list. The contract name defaults to the file stem.
    """
    p = Path(path)
    contract = name or p.stem
    try:
        doc = msgspec.json.decode(p.read_bytes())
    except msgspec.DecodeError as e:
        raise GenerationFatal(f"invalid JSON: {e}", path=str(p)) from e
    except OSError as e:
        raise GenerationFatal(f"cannot read descriptor file: {e}", path=str(p)) from e

    if isinstance(doc, dict) and "abi" in doc:
        doc = doc["abi"]
    return parse_interface(contract, doc)


def load_interfaces(directory: Union[str, Path]) -> List[ContractInterface]:
    """Load every *.json file in `directory`, ordered by file name."""
    d = Path(directory)
    if not d.is_dir():
        raise GenerationFatal("descriptor directory does not exist", path=str(d))
    return [load_interface(p) for p in sorted(d.glob("*.json"))]