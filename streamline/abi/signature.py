"""
Signature strings and their keccak-256 digests.

- event topic-0   = keccak256("Name(t1,t2,…)")
- call selector   = keccak256("name(t1,…)")[:4]

Type strings inside signatures are canonical (see `types.canonical_type`).
"""

from __future__ import annotations

from typing import Sequence

from Crypto.Hash import keccak as _keccak

from .types import canonical_type

__all__ = ["keccak256", "signature", "topic0", "selector"]


def keccak256(data: bytes) -> bytes:
    """Keccak-256 (pre-SHA3 padding) as used for Ethereum signatures."""
    h = _keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def signature(name: str, params: Sequence) -> str:
    """`name(t1,t2,…)` over the canonical types of `params` (objects with .type/.components)."""
    return f"{name}(" + ",".join(canonical_type(p.type, p.components) for p in params) + ")"


def topic0(sig: str) -> bytes:
    return keccak256(sig.encode("ascii"))


def selector(sig: str) -> bytes:
    return keccak256(sig.encode("ascii"))[:4]
