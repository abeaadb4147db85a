from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from spam_detector.services.storage import JsonStorage
from spam_detector.services.tokens import (
    TokenProvider,
    TokenRecord,
    fetch_token_list,
)
from spam_detector.utils.errors import TokenListUnavailableError

TETHER = TokenRecord(
    name="Tether",
    symbol="USDT",
    deployments={"1": "0xdac17f958d2ee523a2206206994597c13d831ec7"},
)
UNISWAP = TokenRecord(name="Uniswap", symbol="UNI")


class TestTokenProvider:
    def test_fetches_and_persists(self, tmp_path):
        storage = JsonStorage(tmp_path, "tokens.json")
        fetcher = AsyncMock(return_value=[TETHER])
        provider = TokenProvider(storage, fetcher=fetcher, ttl_seconds=60)

        assert asyncio.run(provider.get_list()) == [TETHER]
        stored = asyncio.run(storage.read())
        assert stored["tokens"][0]["symbol"] == "USDT"

    def test_fresh_snapshot_is_not_refetched(self, tmp_path):
        fetcher = AsyncMock(return_value=[TETHER])
        provider = TokenProvider(JsonStorage(tmp_path, "tokens.json"), fetcher=fetcher, ttl_seconds=60)

        async def run():
            await provider.get_list()
            await provider.get_list()

        asyncio.run(run())
        fetcher.assert_awaited_once()

    def test_concurrent_callers_fetch_once(self, tmp_path):
        fetcher = AsyncMock(return_value=[TETHER])
        provider = TokenProvider(JsonStorage(tmp_path, "tokens.json"), fetcher=fetcher, ttl_seconds=60)

        async def run():
            return await asyncio.gather(*(provider.get_list() for _ in range(5)))

        results = asyncio.run(run())
        assert all(r == [TETHER] for r in results)
        fetcher.assert_awaited_once()

    def test_fresh_snapshot_on_disk_is_used(self, tmp_path):
        storage = JsonStorage(tmp_path, "tokens.json")
        asyncio.run(storage.write({"updated_at": time.time(), "tokens": [UNISWAP.model_dump()]}))
        fetcher = AsyncMock(return_value=[TETHER])

        tokens = asyncio.run(TokenProvider(storage, fetcher=fetcher, ttl_seconds=60).get_list())

        assert tokens == [UNISWAP]
        fetcher.assert_not_awaited()

    def test_stale_snapshot_is_refreshed(self, tmp_path):
        storage = JsonStorage(tmp_path, "tokens.json")
        asyncio.run(storage.write({"updated_at": 0, "tokens": [UNISWAP.model_dump()]}))
        fetcher = AsyncMock(return_value=[TETHER])

        tokens = asyncio.run(TokenProvider(storage, fetcher=fetcher, ttl_seconds=60).get_list())

        assert tokens == [TETHER]

    def test_fetch_failure_falls_back_to_stale_snapshot(self, tmp_path):
        storage = JsonStorage(tmp_path, "tokens.json")
        asyncio.run(storage.write({"updated_at": 0, "tokens": [UNISWAP.model_dump()]}))
        fetcher = AsyncMock(side_effect=RuntimeError("list is down"))

        tokens = asyncio.run(TokenProvider(storage, fetcher=fetcher, ttl_seconds=60).get_list())

        assert tokens == [UNISWAP]

    def test_fetch_failure_without_snapshot_raises(self, tmp_path):
        fetcher = AsyncMock(side_effect=RuntimeError("list is down"))
        provider = TokenProvider(JsonStorage(tmp_path, "tokens.json"), fetcher=fetcher)

        with pytest.raises(TokenListUnavailableError, match="list is down"):
            asyncio.run(provider.get_list())


class TestFetchTokenList:
    def test_missing_url_raises(self):
        with pytest.raises(TokenListUnavailableError):
            asyncio.run(fetch_token_list(""))
