from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from eth_abi import encode

from spam_detector.services.rpc import EvmRpcClient, call_function, namehash
from spam_detector.utils.abi import function_selector, pad_address
from spam_detector.utils.errors import CallRevertedError, RpcError

ADDRESS = pad_address(0xA11CE)
RESOLVER = pad_address(0x7E5)


def _client(handler) -> EvmRpcClient:
    client = EvmRpcClient("https://rpc.test", timeout=1.0)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def _result(result):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    return handler


def _error(message):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": 3, "message": message}},
        )

    return handler


class TestNamehash:
    def test_empty_name(self):
        assert namehash("") == b"\x00" * 32

    def test_eth(self):
        assert namehash("eth").hex() == (
            "93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
        )


class TestEvmRpcClient:
    def test_get_code(self):
        assert asyncio.run(_client(_result("0x6080")).get_code(ADDRESS)) == "0x6080"

    def test_missing_code_is_eoa(self):
        assert asyncio.run(_client(_result(None)).get_code(ADDRESS)) == "0x"

    def test_balance_and_nonce_are_decoded(self):
        client = _client(_result("0x10"))
        assert asyncio.run(client.get_balance(ADDRESS)) == 16
        assert asyncio.run(client.get_transaction_count(ADDRESS)) == 16

    def test_revert_maps_to_call_reverted(self):
        with pytest.raises(CallRevertedError):
            asyncio.run(_client(_error("execution reverted")).call(ADDRESS, "0x18160ddd"))

    def test_other_errors_map_to_rpc_error(self):
        with pytest.raises(RpcError) as exc_info:
            asyncio.run(_client(_error("header not found")).get_code(ADDRESS))
        assert not isinstance(exc_info.value, CallRevertedError)

    def test_http_errors_propagate(self):
        client = _client(lambda request: httpx.Response(503))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(client.get_code(ADDRESS))

    def test_lookup_name(self):
        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            data = payload["params"][0]["data"]
            if data.startswith("0x" + function_selector("resolver(bytes32)")):
                result = encode(["address"], [RESOLVER])
            else:
                result = encode(["string"], ["alice.eth"])
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x" + result.hex()}
            )

        assert asyncio.run(_client(handler).lookup_name(ADDRESS)) == "alice.eth"

    def test_lookup_name_without_resolver(self):
        result = "0x" + encode(["address"], [pad_address(0)]).hex()
        assert asyncio.run(_client(_result(result)).lookup_name(ADDRESS)) is None


class TestCallFunction:
    def test_decodes_single_value(self, make_provider):
        provider = make_provider()
        provider.set_result(ADDRESS, "symbol()", ["string"], ["TKN"])
        result = asyncio.run(call_function(provider, ADDRESS, "symbol()", output_types=["string"]))
        assert result == "TKN"

    def test_empty_result_is_an_error(self, make_provider):
        provider = make_provider()
        provider.results[(ADDRESS, function_selector("totalSupply()"))] = "0x"
        with pytest.raises(ValueError):
            asyncio.run(call_function(provider, ADDRESS, "totalSupply()"))
