from __future__ import annotations

import pytest

from streamline.abi import ContractInterface, parse_interface
from streamline.errors import GenerationFatal
from streamline.generator import (AccessorKind, accessor_name, fold_name, generate,
                                  generate_all, render_manifest)


@pytest.mark.parametrize(
    "raw,folded",
    [
        ("Transfer", "transfer"),
        ("totalSupply", "total_supply"),
        ("OwnershipTransferred", "ownership_transferred"),
        ("ERC20Transfer", "erc20_transfer"),
        ("DOMAIN_SEPARATOR", "domain_separator"),
        ("getHTTPUrl", "get_http_url"),
        ("x", "x"),
    ],
)
def test_fold_name(raw: str, folded: str) -> None:
    assert fold_name(raw) == folded


def test_erc20_accessor_table(erc20: ContractInterface) -> None:
    """Events always bind; only zero-input view/pure functions get call accessors."""
    table = generate(erc20)
    assert list(table) == [
        "erc20.approval",
        "erc20.call_decimals",
        "erc20.call_name",
        "erc20.call_total_supply",
        "erc20.transfer",
    ]
    transfer = table["erc20.transfer"]
    assert transfer.kind is AccessorKind.EVENT
    assert transfer.contract == "erc20"
    assert transfer.member == "transfer"
    assert transfer.params == ("block", "addresses?")
    assert transfer.returns == "(address,address,uint256)[]"

    supply = table["erc20.call_total_supply"]
    assert supply.kind is AccessorKind.CALL
    assert supply.params == ("address",)
    assert supply.returns == "uint256"
    assert supply.hash.hex() == "18160ddd"


def test_excluded_functions_never_bind() -> None:
    """nonpayable, payable, and any function with inputs get no accessor."""
    items = [
        {"type": "function", "name": "a", "stateMutability": "nonpayable", "inputs": [], "outputs": []},
        {"type": "function", "name": "b", "stateMutability": "payable", "inputs": [], "outputs": []},
        {
            "type": "function",
            "name": "c",
            "stateMutability": "view",
            "inputs": [{"name": "who", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        {"type": "function", "name": "d", "stateMutability": "pure", "inputs": [], "outputs": []},
    ]
    assert list(generate(parse_interface("k", items))) == ["k.call_d"]


def test_generation_is_deterministic(erc20: ContractInterface) -> None:
    first = generate(erc20)
    second = generate(erc20)
    assert list(first) == list(second)
    assert [s.signature for s in first.values()] == [s.signature for s in second.values()]

    shuffled = ContractInterface(
        name=erc20.name,
        events=tuple(reversed(erc20.events)),
        functions=tuple(reversed(erc20.functions)),
    )
    again = generate(shuffled)
    assert list(again) == list(first)
    assert [s.signature for s in again.values()] == [s.signature for s in first.values()]


def test_event_and_view_with_same_name_coexist() -> None:
    items = [
        {"type": "event", "name": "Paused", "inputs": []},
        {"type": "function", "name": "paused", "stateMutability": "view", "inputs": [],
         "outputs": [{"name": "", "type": "bool"}]},
    ]
    assert list(generate(parse_interface("p", items))) == ["p.call_paused", "p.paused"]


def test_folding_collision_is_fatal() -> None:
    items = [
        {"type": "event", "name": "FooBar", "inputs": []},
        {"type": "event", "name": "Foo_Bar", "inputs": [{"name": "x", "type": "uint8"}]},
    ]
    with pytest.raises(GenerationFatal) as ei:
        generate(parse_interface("c", items))
    assert ei.value.path == "c.Foo_Bar"


def test_duplicate_contract_names_are_fatal(erc20: ContractInterface) -> None:
    with pytest.raises(GenerationFatal, match="duplicate"):
        generate_all([erc20, erc20])


def test_generate_all_merges_in_name_order(erc20: ContractInterface, pair: ContractInterface) -> None:
    table = generate_all([pair, erc20])
    assert list(table) == sorted(table)
    assert "pair.call_get_reserves" in table
    assert "pair.call_sync" not in table
    assert table["pair.call_get_reserves"].returns == "(uint112,uint112,uint32)"


def test_accessor_name() -> None:
    assert accessor_name("erc20", "Transfer", AccessorKind.EVENT) == "erc20.transfer"
    assert accessor_name("erc20", "totalSupply", AccessorKind.CALL) == "erc20.call_total_supply"


def test_render_manifest(erc20: ContractInterface) -> None:
    entries = {e["name"]: e for e in render_manifest(generate(erc20))}
    assert entries["erc20.transfer"] == {
        "name": "erc20.transfer",
        "kind": "event",
        "contract": "erc20",
        "signature": "Transfer(address,address,uint256)",
        "topic0": "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef",
        "params": ["block", "addresses?"],
        "returns": "(address,address,uint256)[]",
    }
    assert entries["erc20.call_decimals"]["selector"] == "0x313ce567"
    assert entries["erc20.call_decimals"]["returns"] == "uint8"
