from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Literal

import httpx
from pydantic import BaseModel

from spam_detector.config import settings
from spam_detector.services.storage import JsonStorage
from spam_detector.utils.errors import TokenListUnavailableError

logger = logging.getLogger("token_provider")


class TokenRecord(BaseModel):
    name: str
    symbol: str
    # chain id -> contract address
    deployments: dict[str, str] = {}
    type: Literal["coin", "nft"] = "coin"


class TokenListSnapshot(BaseModel):
    updated_at: float
    tokens: list[TokenRecord]


TokenListFetcher = Callable[[], Awaitable[list[TokenRecord]]]


async def fetch_token_list(url: str | None = None) -> list[TokenRecord]:
    url = url if url is not None else settings.token_list_url
    if not url:
        raise TokenListUnavailableError("No token list URL configured")
    async with httpx.AsyncClient(timeout=30.0) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return [TokenRecord(**item) for item in resp.json()]


class TokenProvider:
    """Reference list of reputable tokens.

    The read-through-cache-or-fetch sequence is serialized by a lock, so
    concurrent callers trigger at most one fetch. A failed fetch falls back to
    the last stored snapshot.
    """

    def __init__(
        self,
        storage: JsonStorage[dict],
        fetcher: TokenListFetcher | None = None,
        ttl_seconds: int | None = None,
    ):
        self._storage = storage
        self._fetcher = fetcher or fetch_token_list
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.token_list_ttl_seconds
        self._lock = asyncio.Lock()
        self._snapshot: TokenListSnapshot | None = None

    async def get_list(self) -> list[TokenRecord]:
        async with self._lock:
            if self._snapshot is None:
                stored = await self._storage.read()
                if stored:
                    self._snapshot = TokenListSnapshot(**stored)

            if self._snapshot and self._snapshot.updated_at + self._ttl > time.time():
                return self._snapshot.tokens

            try:
                tokens = await self._fetcher()
            except Exception as e:
                if self._snapshot:
                    logger.error(f"Token list fetch failed, falling back to cached version: {e}")
                    return self._snapshot.tokens
                raise TokenListUnavailableError(f"Token list fetch failed: {e}") from e

            self._snapshot = TokenListSnapshot(updated_at=time.time(), tokens=tokens)
            await self._storage.write(self._snapshot.model_dump())
            logger.info(f"Token list updated: {len(tokens)} tokens")

            return self._snapshot.tokens


token_provider = TokenProvider(JsonStorage(settings.data_path, "tokens.json"))
