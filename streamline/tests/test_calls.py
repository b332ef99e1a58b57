from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from eth_abi import encode as abi_encode

from streamline.abi import ContractInterface
from streamline.errors import RpcError
from streamline.runtime.calls import JsonRpcCaller, call_function
from streamline.runtime.values import EMPTY, DynamicValue

from .helpers import TOKEN, hx


class FakeProvider:
    """Answers eth_call from a selector → return-data table."""

    def __init__(self, answers: Dict[bytes, bytes]) -> None:
        self.answers = answers
        self.calls: List[Tuple[bytes, bytes]] = []

    def eth_call(self, to: bytes, data: bytes) -> bytes:
        self.calls.append((to, data))
        try:
            return self.answers[data]
        except KeyError:
            raise RpcError("execution reverted", code="rpc_remote_error")


def _fn(iface: ContractInterface, name: str):
    return next(f for f in iface.functions if f.name == name)


def _caller(handler) -> JsonRpcCaller:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return JsonRpcCaller("http://node.test/rpc", client=client)


def test_json_rpc_caller_posts_eth_call() -> None:
    seen: List[Dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x" + "00" * 31 + "2a"})

    with _caller(handler) as caller:
        out = caller.eth_call(TOKEN, bytes.fromhex("18160ddd"))

    assert out == bytes(31) + b"\x2a"
    (body,) = seen
    assert body["method"] == "eth_call"
    assert body["params"] == [{"to": hx(TOKEN), "data": "0x18160ddd"}, "latest"]


def test_json_rpc_caller_uses_configured_block_tag(monkeypatch) -> None:
    from streamline.config import load_config

    monkeypatch.setenv("STREAMLINE_CALL_BLOCK_TAG", "finalized")
    load_config.cache_clear()
    tags: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        tags.append(json.loads(request.content)["params"][1])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x"})

    _caller(handler).eth_call(TOKEN, b"\x00\x00\x00\x00")
    assert tags == ["finalized"]


@pytest.mark.parametrize(
    "response,code",
    [
        (httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted"}}),
         "rpc_remote_error"),
        (httpx.Response(500, text="boom"), "rpc_transport"),
        (httpx.Response(200, text="not json"), "rpc_malformed"),
        (httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": 42}), "rpc_malformed"),
        (httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}), "rpc_error"),
    ],
)
def test_json_rpc_caller_errors(response: httpx.Response, code: str) -> None:
    caller = _caller(lambda request: response)
    with pytest.raises(RpcError) as ei:
        caller.eth_call(TOKEN, b"\x00\x00\x00\x00")
    assert ei.value.code == code


def test_single_output_is_returned_directly(erc20: ContractInterface) -> None:
    total = _fn(erc20, "totalSupply")
    provider = FakeProvider({total.selector: abi_encode(["uint256"], [10**24])})
    assert call_function(provider, total, hx(TOKEN)) == DynamicValue.integer(10**24)
    assert provider.calls == [(TOKEN, total.selector)]


def test_string_output(erc20: ContractInterface) -> None:
    name = _fn(erc20, "name")
    provider = FakeProvider({name.selector: abi_encode(["string"], ["Token"])})
    assert call_function(provider, name, DynamicValue.text(hx(TOKEN))) == DynamicValue.text("Token")


def test_multiple_outputs_become_a_map(pair: ContractInterface) -> None:
    reserves = _fn(pair, "getReserves")
    provider = FakeProvider({reserves.selector: abi_encode(["uint112", "uint112", "uint32"], [5, 6, 1700000000])})
    out = call_function(provider, reserves, TOKEN)
    assert out.to_plain() == {"_reserve0": "5", "_reserve1": "6", "_blockTimestampLast": "1700000000"}


def test_no_outputs_is_empty(pair: ContractInterface) -> None:
    sync = _fn(pair, "sync")
    provider = FakeProvider({sync.selector: b""})
    assert call_function(provider, sync, TOKEN) is EMPTY


@pytest.mark.parametrize("target", ["0x1234", b"\x00" * 21, 7, None, DynamicValue.integer(1)])
def test_bad_target_is_empty_without_calling(erc20: ContractInterface, target) -> None:
    provider = FakeProvider({})
    assert call_function(provider, _fn(erc20, "totalSupply"), target) is EMPTY
    assert provider.calls == []


def test_failures_are_empty(erc20: ContractInterface) -> None:
    total = _fn(erc20, "totalSupply")
    assert call_function(FakeProvider({}), total, TOKEN) is EMPTY
    assert call_function(FakeProvider({total.selector: b"\x01"}), total, TOKEN) is EMPTY
    assert call_function(None, total, TOKEN) is EMPTY


def test_rpc_error_through_http_is_empty(erc20: ContractInterface) -> None:
    caller = _caller(lambda request: httpx.Response(502))
    assert call_function(caller, _fn(erc20, "decimals"), TOKEN) is EMPTY
