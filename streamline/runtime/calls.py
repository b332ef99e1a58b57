"""
streamline.runtime.calls: read-only remote calls for zero-argument view/pure functions.

The host supplies a `CallProvider`; `JsonRpcCaller` is the stock one and
issues `eth_call` over HTTP JSON-RPC with `httpx`:

    >>> caller = JsonRpcCaller("http://127.0.0.1:8545")
    >>> raw = caller.eth_call(to=bytes.fromhex("aa" * 20), data=bytes.fromhex("18160ddd"))

`call_function()` is what a generated call accessor runs. Every failure
(bad target address, transport error, JSON-RPC error, undecodable output)
ends in the null dynamic value; nothing propagates into the script.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

import httpx
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from ..abi.descriptor import FunctionDescriptor
from ..abi.types import ADDRESS
from ..config import BridgeConfig, load_config
from ..errors import NO_VALUE, RpcError
from .bridge import from_dynamic, log_conversion, to_dynamic
from .values import EMPTY, DynamicValue, bytes_to_hex, parse_hex

log = logging.getLogger(__name__)

__all__ = ["CallProvider", "JsonRpcCaller", "call_function", "ETH_CALL"]

ETH_CALL = "eth_call"


@runtime_checkable
class CallProvider(Protocol):
    """Minimal host interface for read-only calls."""

    def eth_call(self, to: bytes, data: bytes) -> bytes: ...


# --------------------------------------------------------------------------- #
# JSON-RPC provider                                                           #
# --------------------------------------------------------------------------- #


def _ok(body: Any) -> Any:
    if not isinstance(body, Mapping):
        raise RpcError("malformed JSON-RPC response (not an object)")
    err = body.get("error")
    if err:
        err = err if isinstance(err, Mapping) else {"message": str(err)}
        raise RpcError(
            str(err.get("message", "unknown error")),
            code="rpc_remote_error",
            context={"rpc_code": err.get("code"), "data": err.get("data")},
        )
    if "result" not in body:
        raise RpcError("malformed JSON-RPC response (no result)")
    return body["result"]


class JsonRpcCaller:
    """`CallProvider` backed by an HTTP JSON-RPC endpoint."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        block_tag: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        config: Optional[BridgeConfig] = None,
    ) -> None:
        cfg = config or load_config()
        self.url = url or cfg.rpc_url
        self.timeout = timeout if timeout is not None else cfg.rpc_timeout
        self.block_tag = block_tag or cfg.call_block_tag
        self._client = client or httpx.Client(timeout=self.timeout)
        self._owns_client = client is None
        self._ids = itertools.count(1)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "JsonRpcCaller":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def request(self, method: str, params: Sequence[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
        try:
            resp = self._client.post(self.url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as e:
            raise RpcError(f"{method} transport failure: {e}", code="rpc_transport") from e
        except ValueError as e:
            raise RpcError(f"{method} returned non-JSON body", code="rpc_malformed") from e
        return _ok(body)

    def eth_call(self, to: bytes, data: bytes) -> bytes:
        result = self.request(
            ETH_CALL,
            [{"to": bytes_to_hex(to), "data": bytes_to_hex(data)}, self.block_tag],
        )
        out = parse_hex(result)
        if out is NO_VALUE:
            raise RpcError("eth_call result is not 0x-hex", code="rpc_malformed")
        return out


# --------------------------------------------------------------------------- #
# Accessor body                                                               #
# --------------------------------------------------------------------------- #


def _outputs_to_dynamic(fn: FunctionDescriptor, decoded: Sequence[Any]) -> DynamicValue:
    record = fn.output_type
    if not record.fields:
        return EMPTY
    if len(record.fields) == 1:
        return to_dynamic(decoded[0], record.fields[0][1])
    return to_dynamic(tuple(decoded), record)


def call_function(
    provider: Optional[CallProvider],
    fn: FunctionDescriptor,
    address: Union[DynamicValue, str, bytes, Any],
    *,
    config: Optional[BridgeConfig] = None,
) -> DynamicValue:
    """
    Perform the zero-argument read-only call `fn` against `address`.

    One output is returned as its dynamic value, several as an ordered map
    keyed by output name; a function without outputs yields EMPTY.
    """
    target = from_dynamic(address, ADDRESS)
    if target is NO_VALUE:
        log_conversion(log, "%s: target %r is not a 20-byte address", fn.name, address, config=config)
        return EMPTY
    if provider is None:
        log_conversion(log, "%s: no call provider configured", fn.name, config=config)
        return EMPTY

    try:
        raw = provider.eth_call(target, fn.selector)
    except RpcError as e:
        log_conversion(log, "%s at %s failed: %s", fn.signature, bytes_to_hex(target), e, config=config)
        return EMPTY

    try:
        decoded = abi_decode([p.host.name for p in fn.outputs], raw)  # type: ignore[union-attr]
        return _outputs_to_dynamic(fn, decoded)
    except (DecodingError, ValueError) as e:
        log_conversion(log, "%s output does not decode: %s", fn.signature, e, config=config)
        return EMPTY
