"""
streamline.generator: contract interfaces → accessor tables.

For every event of a contract one event accessor is produced; for every
function that is `view`/`pure` and declares no inputs one call accessor is
produced. Everything else (state-mutating functions, functions taking
arguments) gets no binding.

Naming is a pure function of (contract name, descriptor name):

    erc20 + Transfer          → "erc20.transfer"
    erc20 + totalSupply()     → "erc20.call_total_supply"
    ownable + OwnershipTransferred → "ownable.ownership_transferred"

A table is a plain dict ordered by accessor name, so the same descriptors
always produce the same table regardless of declaration order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .abi.descriptor import ContractInterface, EventDescriptor, FunctionDescriptor
from .errors import GenerationFatal

__all__ = [
    "AccessorKind",
    "AccessorSpec",
    "fold_name",
    "accessor_name",
    "generate",
    "generate_all",
    "render_manifest",
    "CALL_PREFIX",
]

CALL_PREFIX = "call_"

_FOLD_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def fold_name(name: str) -> str:
    """CamelCase / mixedCase → snake_case (`ERC20Transfer` → `erc20_transfer`)."""
    return _FOLD_RE.sub("_", name).lower()


class AccessorKind(str, Enum):
    EVENT = "event"
    CALL = "call"


def accessor_name(contract: str, descriptor_name: str, kind: AccessorKind) -> str:
    member = fold_name(descriptor_name)
    if kind is AccessorKind.CALL:
        member = CALL_PREFIX + member
    return f"{contract}.{member}"


@dataclass(frozen=True)
class AccessorSpec:
    """Declarative description of one generated accessor."""

    name: str
    contract: str
    member: str
    kind: AccessorKind
    descriptor: Union[EventDescriptor, FunctionDescriptor]

    @property
    def signature(self) -> str:
        return self.descriptor.signature

    @property
    def params(self) -> Tuple[str, ...]:
        """Script-visible parameters."""
        if self.kind is AccessorKind.EVENT:
            return ("block", "addresses?")
        return ("address",)

    @property
    def returns(self) -> str:
        if isinstance(self.descriptor, EventDescriptor):
            return self.descriptor.record_type.name + "[]"
        out = self.descriptor.output_type
        if len(out.fields) == 1:
            return out.fields[0][1].name
        return out.name

    @property
    def hash(self) -> Optional[bytes]:
        """topic-0 for events (None when anonymous), selector for calls."""
        if isinstance(self.descriptor, EventDescriptor):
            return self.descriptor.topic0
        return self.descriptor.selector


def _bindable(fn: FunctionDescriptor) -> bool:
    return fn.read_only and not fn.inputs


def _add(table: Dict[str, AccessorSpec], spec: AccessorSpec, *, clash: str) -> None:
    if spec.name in table:
        raise GenerationFatal(
            f"accessor name {spec.name!r} is produced by both "
            f"{table[spec.name].signature!r} and {spec.signature!r}",
            path=clash,
        )
    table[spec.name] = spec


def generate(interface: ContractInterface) -> Dict[str, AccessorSpec]:
    """
    Produce the accessor table for one contract.

    Raises GenerationFatal when two events (or two call bindings) of the
    contract fold to the same accessor name.
    """
    contract = interface.name
    table: Dict[str, AccessorSpec] = {}

    for ev in interface.events:
        name = accessor_name(contract, ev.name, AccessorKind.EVENT)
        _add(
            table,
            AccessorSpec(name, contract, name.split(".", 1)[1], AccessorKind.EVENT, ev),
            clash=f"{contract}.{ev.name}",
        )

    for fn in interface.functions:
        if not _bindable(fn):
            continue
        name = accessor_name(contract, fn.name, AccessorKind.CALL)
        _add(
            table,
            AccessorSpec(name, contract, name.split(".", 1)[1], AccessorKind.CALL, fn),
            clash=f"{contract}.{fn.name}",
        )

    return dict(sorted(table.items()))


def generate_all(interfaces: Iterable[ContractInterface]) -> Dict[str, AccessorSpec]:
    """Merge the tables of several contracts; contract names must be unique."""
    seen = set()
    merged: Dict[str, AccessorSpec] = {}
    for iface in interfaces:
        if iface.name in seen:
            raise GenerationFatal("duplicate contract name", path=iface.name)
        seen.add(iface.name)
        merged.update(generate(iface))
    return dict(sorted(merged.items()))


def render_manifest(table: Dict[str, AccessorSpec]) -> List[Dict[str, Any]]:
    """JSON-ready listing of a table, one entry per accessor."""
    out: List[Dict[str, Any]] = []
    for name, spec in table.items():
        h = spec.hash
        out.append(
            {
                "name": name,
                "kind": spec.kind.value,
                "contract": spec.contract,
                "signature": spec.signature,
                "selector" if spec.kind is AccessorKind.CALL else "topic0": (
                    "0x" + h.hex() if h is not None else None
                ),
                "params": list(spec.params),
                "returns": spec.returns,
            }
        )
    return out
