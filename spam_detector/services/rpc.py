from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from eth_utils import keccak

from spam_detector.config import settings
from spam_detector.utils.abi import decode_result, encode_call
from spam_detector.utils.errors import CallRevertedError, RpcError

logger = logging.getLogger("rpc")

ENS_REGISTRY_ADDRESS = "0x00000000000c2e074ec69a0dfb2997ba6c7d2e1e"


class DataProvider(Protocol):
    """Read-only chain access used by the analyzer and the identifier."""

    async def get_code(self, address: str) -> str: ...

    async def call(self, address: str, data: str, block: int | None = None) -> str: ...

    async def get_balance(self, address: str, block: int | None = None) -> int: ...

    async def get_transaction_count(self, address: str) -> int: ...

    async def lookup_name(self, address: str) -> str | None: ...


def namehash(name: str) -> bytes:
    node = b"\x00" * 32
    if name:
        for label in reversed(name.split(".")):
            node = keccak(node + keccak(text=label))
    return node


def _block_tag(block: int | None) -> str:
    return hex(block) if block is not None else "latest"


class EvmRpcClient:
    def __init__(self, rpc_url: str, timeout: float | None = None):
        self._url = rpc_url
        self._id = 0
        self._timeout = timeout if timeout is not None else settings.rpc_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return self._url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _call(self, method: str, params: list | None = None) -> Any:
        self._id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._id,
        }
        client = self._get_client()
        resp = await client.post(self._url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            error = data["error"]
            message = str(error.get("message", "")) if isinstance(error, dict) else str(error)
            if "revert" in message.lower():
                raise CallRevertedError(f"Call reverted: {message}")
            raise RpcError(f"RPC error: {error}")
        return data.get("result")

    async def get_code(self, address: str) -> str:
        """Get contract code at address. Returns '0x' for EOAs."""
        result = await self._call("eth_getCode", [address, "latest"])
        return result or "0x"

    async def call(self, address: str, data: str, block: int | None = None) -> str:
        result = await self._call(
            "eth_call", [{"to": address, "data": data}, _block_tag(block)]
        )
        return result or "0x"

    async def get_balance(self, address: str, block: int | None = None) -> int:
        result = await self._call("eth_getBalance", [address, _block_tag(block)])
        return int(result or "0x0", 16)

    async def get_transaction_count(self, address: str) -> int:
        result = await self._call("eth_getTransactionCount", [address, "latest"])
        return int(result or "0x0", 16)

    async def lookup_name(self, address: str) -> str | None:
        """ENS reverse resolution. Returns None when no primary name is set."""
        node = namehash(f"{address.lower()[2:]}.addr.reverse")

        data = await self.call(ENS_REGISTRY_ADDRESS, encode_call("resolver(bytes32)", [node]))
        (resolver,) = decode_result(["address"], data)
        if int(resolver, 16) == 0:
            return None

        data = await self.call(resolver, encode_call("name(bytes32)", [node]))
        (name,) = decode_result(["string"], data)
        return name or None


async def call_function(
    provider: DataProvider,
    address: str,
    signature: str,
    args: list | tuple = (),
    output_types: list[str] | tuple[str, ...] = ("uint256",),
    block: int | None = None,
) -> Any:
    """eth_call a contract function and decode its single return value."""
    data = await provider.call(address, encode_call(signature, args), block)
    values = decode_result(output_types, data)
    return values[0] if len(values) == 1 else values
