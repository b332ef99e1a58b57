from __future__ import annotations

import importlib
from importlib import metadata as importlib_metadata
from pathlib import Path

import pytest
from eth_abi import encode as abi_encode

import streamline
from streamline.abi import ContractInterface
from streamline.errors import GenerationFatal
from streamline.generator import generate, generate_all
from streamline.runtime.builtins import address, uint
from streamline.runtime.logs import Block
from streamline.runtime.registry import CallAccessor, EventAccessor, build_registry
from streamline.runtime.values import EMPTY, DynamicValue

from .helpers import ALICE, BOB, TOKEN, hx, transfer_log


class StaticProvider:
    def __init__(self, data: bytes) -> None:
        self.data = data

    def eth_call(self, to: bytes, data: bytes) -> bytes:
        return self.data


def test_registry_binds_accessors_and_builtins(erc20: ContractInterface, pair: ContractInterface) -> None:
    reg = build_registry(generate_all([erc20, pair]))
    assert "address" in reg and "uint" in reg
    assert isinstance(reg["erc20.transfer"], EventAccessor)
    assert isinstance(reg["pair.call_get_reserves"], CallAccessor)
    assert reg.contracts == ["erc20", "pair"]
    assert reg.module("erc20").transfer is reg["erc20.transfer"]
    assert list(reg) == sorted(reg)


def test_registry_is_read_only(erc20: ContractInterface) -> None:
    reg = build_registry(generate(erc20))
    with pytest.raises(TypeError):
        reg["erc20.transfer"] = None  # type: ignore[index]
    with pytest.raises(KeyError):
        reg.module("nope")


def test_registry_accepts_several_tables(erc20: ContractInterface, pair: ContractInterface) -> None:
    reg = build_registry([generate(erc20), generate(pair)])
    assert "pair.sync" in reg
    with pytest.raises(GenerationFatal):
        build_registry([generate(erc20), generate(erc20)])


def test_event_accessor_through_registry(erc20: ContractInterface) -> None:
    reg = build_registry(generate(erc20))
    block = Block(logs=(transfer_log(ALICE, BOB, 5),))
    out = reg.module("erc20").transfer(block)
    assert out[0]["value"] == DynamicValue.integer(5)
    assert reg["erc20.approval"](block) is EMPTY


@pytest.mark.parametrize("addresses", [["0x12"], "nope", [1], 1.5])
def test_unconvertible_address_filter_is_empty(erc20: ContractInterface, addresses) -> None:
    reg = build_registry(generate(erc20))
    block = Block(logs=(transfer_log(ALICE, BOB, 5),))
    assert reg["erc20.transfer"](block, addresses) is EMPTY


def test_single_address_and_empty_filter(erc20: ContractInterface) -> None:
    accessor = build_registry(generate(erc20))["erc20.transfer"]
    block = [transfer_log(ALICE, BOB, 5)]
    assert len(accessor(block, hx(TOKEN))) == 1
    assert len(accessor(block, EMPTY)) == 1
    assert accessor(block, []) is EMPTY


def test_address_filter_accepts_sets(erc20: ContractInterface) -> None:
    accessor = build_registry(generate(erc20))["erc20.transfer"]
    block = Block(logs=(transfer_log(ALICE, BOB, 5),))
    assert len(accessor(block, {hx(TOKEN)})) == 1
    assert len(accessor(block, frozenset({hx(TOKEN), hx(ALICE)}))) == 1
    assert accessor(block, {hx(ALICE)}) is EMPTY
    assert accessor(block, set()) is EMPTY


def test_call_accessor_through_registry(erc20: ContractInterface) -> None:
    reg = build_registry(generate(erc20), caller=StaticProvider(abi_encode(["uint8"], [18])))
    assert reg["erc20.call_decimals"](hx(TOKEN)) == DynamicValue.integer(18)


def test_call_accessor_without_provider_is_empty(erc20: ContractInterface) -> None:
    reg = build_registry(generate(erc20))
    assert reg["erc20.call_total_supply"](hx(TOKEN)) is EMPTY


def test_load_bindings(fixtures_dir: Path) -> None:
    reg = streamline.load_bindings(fixtures_dir)
    assert reg.contracts == ["erc20", "pair"]
    assert "erc20.call_total_supply" in reg


def test_load_bindings_uses_configured_directory(monkeypatch, fixtures_dir: Path) -> None:
    from streamline.config import load_config

    monkeypatch.setenv("STREAMLINE_ABI_DIR", str(fixtures_dir))
    load_config.cache_clear()
    assert "pair.sync" in streamline.load_bindings()


# ---------------------------------------------------------------------------
# builtins
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("length", [0, 1, 19, 21, 32])
def test_address_builtin_rejects_other_lengths(length: int) -> None:
    assert address(DynamicValue.byte_array(bytes(length))) is EMPTY


def test_address_builtin() -> None:
    assert address(DynamicValue.byte_array(b"\xab" * 20)) == DynamicValue.text("0x" + "ab" * 20)
    assert address("0x" + "AB" * 20) == DynamicValue.text("0x" + "ab" * 20)
    assert address(5) is EMPTY


def test_uint_builtin() -> None:
    big = 2**256 - 1
    assert uint(DynamicValue.integer(big)) == DynamicValue.text(str(big))
    assert uint(str(big)) == DynamicValue.integer(big)
    assert uint(uint(DynamicValue.integer(-42))) == DynamicValue.integer(-42)
    for bad in ("1.5", "-0", "", True, [1]):
        assert uint(bad) is EMPTY


def test_version() -> None:
    assert streamline.version() == streamline.__version__


def test_version_falls_back_outside_an_install(monkeypatch) -> None:
    # the package exports a version() function, so fetch the submodule by name
    version_mod = importlib.import_module("streamline.version")

    def missing(name: str) -> str:
        raise importlib_metadata.PackageNotFoundError(name)

    monkeypatch.setattr(importlib_metadata, "version", missing)
    try:
        assert importlib.reload(version_mod).__version__ == version_mod.BASE_VERSION + "+dev"
    finally:
        monkeypatch.undo()
        importlib.reload(version_mod)
