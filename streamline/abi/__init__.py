"""
streamline.abi
==============

Generation-time view of contract interfaces:

  • descriptor: ABI JSON → immutable ContractInterface / EventDescriptor / FunctionDescriptor
  • types     : projection of descriptor types onto host types
  • signature : canonical signatures, topic-0 hashes and call selectors

Everything here is pure and deterministic; malformed input raises
`streamline.errors.GenerationFatal`.
"""

from __future__ import annotations

from .descriptor import (READ_ONLY_MUTABILITY, ContractInterface,
                         EventDescriptor, FunctionDescriptor, Param,
                         load_interface, load_interfaces, parse_interface)
from .signature import keccak256, selector, signature, topic0
from .types import (ADDRESS, BigIntType, BoolType, ByteArrayType, HostType,
                    SequenceType, TextType, TupleType, canonical_type,
                    is_hashed_in_topic, project)

__all__ = [
    "Param",
    "EventDescriptor",
    "FunctionDescriptor",
    "ContractInterface",
    "READ_ONLY_MUTABILITY",
    "parse_interface",
    "load_interface",
    "load_interfaces",
    "keccak256",
    "signature",
    "topic0",
    "selector",
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
]
