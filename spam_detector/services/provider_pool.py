from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from typing import Any

import httpx

from spam_detector.config import settings
from spam_detector.services.rpc import DataProvider, EvmRpcClient
from spam_detector.utils.errors import (
    CallRevertedError,
    ProviderPoolExhaustedError,
    RpcError,
)

logger = logging.getLogger("provider_pool")

TRANSIENT_ERRORS = (httpx.HTTPError, RpcError, asyncio.TimeoutError)


class ProviderPool:
    """Round-robin DataProvider over several RPC providers.

    A provider that fails ``max_failures`` times in a row leaves the rotation.
    Once every provider has been excluded, calls fail with
    ProviderPoolExhaustedError.
    """

    def __init__(
        self,
        providers: list[DataProvider],
        retry_attempts: int | None = None,
        retry_wait: float | None = None,
        retry_jitter: float | None = None,
        max_failures: int | None = None,
        concurrency: int | None = None,
    ):
        if not providers:
            raise ValueError("ProviderPool requires at least one provider")
        self._providers = list(providers)
        self._live: deque[DataProvider] = deque(providers)
        self._failures: dict[int, int] = {id(p): 0 for p in providers}
        self._attempts = (
            retry_attempts if retry_attempts is not None else settings.provider_retry_attempts
        )
        self._wait = retry_wait if retry_wait is not None else settings.provider_retry_wait_seconds
        self._jitter = (
            retry_jitter if retry_jitter is not None else settings.provider_retry_jitter_seconds
        )
        self._max_failures = (
            max_failures if max_failures is not None else settings.provider_max_failures
        )
        self._semaphore = asyncio.Semaphore(
            concurrency if concurrency is not None else settings.provider_concurrency
        )

    @property
    def size(self) -> int:
        return len(self._live)

    def _next(self) -> DataProvider:
        if not self._live:
            raise ProviderPoolExhaustedError("All providers have been excluded from the pool")
        provider = self._live[0]
        self._live.rotate(-1)
        return provider

    def _record_failure(self, provider: DataProvider) -> None:
        key = id(provider)
        self._failures[key] = self._failures.get(key, 0) + 1
        if self._failures[key] >= self._max_failures and provider in self._live:
            self._live.remove(provider)
            logger.warning(
                f"Provider {getattr(provider, 'url', provider)} excluded after "
                f"{self._failures[key]} failures, {len(self._live)} left"
            )

    async def _run(self, method: str, *args: Any) -> Any:
        last_error: Exception | None = None

        for attempt in range(self._attempts + 1):
            provider = self._next()
            try:
                async with self._semaphore:
                    result = await getattr(provider, method)(*args)
            except CallRevertedError:
                raise
            except TRANSIENT_ERRORS as e:
                last_error = e
                self._record_failure(provider)
                logger.info(f"Attempt ({attempt}/{self._attempts}) of {method} failed: {e}")
                if attempt < self._attempts:
                    await asyncio.sleep(self._wait + random.uniform(0, self._jitter))
                continue

            self._failures[id(provider)] = 0
            return result

        assert last_error is not None
        raise last_error

    async def get_code(self, address: str) -> str:
        return await self._run("get_code", address)

    async def call(self, address: str, data: str, block: int | None = None) -> str:
        return await self._run("call", address, data, block)

    async def get_balance(self, address: str, block: int | None = None) -> int:
        return await self._run("get_balance", address, block)

    async def get_transaction_count(self, address: str) -> int:
        return await self._run("get_transaction_count", address)

    async def lookup_name(self, address: str) -> str | None:
        return await self._run("lookup_name", address)

    async def close(self) -> None:
        for provider in self._providers:
            close = getattr(provider, "close", None)
            if close is not None:
                await close()


rpc_pool = ProviderPool([EvmRpcClient(url) for url in settings.rpc_urls])
