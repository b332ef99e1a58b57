"""Log builders shared by the test modules."""

from __future__ import annotations

from typing import Iterable, Optional

from eth_abi import encode as abi_encode

from streamline.runtime.logs import LogEntry

TRANSFER_TOPIC = bytes.fromhex("ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef")
APPROVAL_TOPIC = bytes.fromhex("8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925")

TOKEN = bytes.fromhex("11" * 20)
ALICE = bytes(19) + b"\xaa"
BOB = bytes(19) + b"\xbb"
CAROL = bytes(19) + b"\xcc"


def hx(b: bytes) -> str:
    return "0x" + b.hex()


def address_topic(addr: bytes) -> bytes:
    return bytes(12) + addr


def transfer_log(
    sender: bytes, recipient: bytes, value: int, *, emitter: bytes = TOKEN, ordinal: int = 0
) -> LogEntry:
    return LogEntry(
        address=emitter,
        topics=(TRANSFER_TOPIC, address_topic(sender), address_topic(recipient)),
        data=abi_encode(["uint256"], [value]),
        ordinal=ordinal,
    )


def approval_log(owner: bytes, spender: bytes, value: int, *, ordinal: int = 0) -> LogEntry:
    return LogEntry(
        address=TOKEN,
        topics=(APPROVAL_TOPIC, address_topic(owner), address_topic(spender)),
        data=abi_encode(["uint256"], [value]),
        ordinal=ordinal,
    )


def rpc_log(entry: LogEntry, *, log_index: Optional[int] = None) -> dict:
    out = {
        "address": hx(entry.address),
        "topics": [hx(t) for t in entry.topics],
        "data": hx(entry.data),
    }
    if log_index is not None:
        out["logIndex"] = hex(log_index)
    return out


def rpc_logs(entries: Iterable[LogEntry]) -> list:
    return [rpc_log(e, log_index=i) for i, e in enumerate(entries)]
