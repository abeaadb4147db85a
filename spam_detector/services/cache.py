from __future__ import annotations

import hashlib
import inspect
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from spam_detector.utils.errors import UninitializedScopeError

T = TypeVar("T")

QueryArgument = Union[str, int, float]


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """Key-value store with per-entry TTL (milliseconds) and lazy expiration."""

    def __init__(self):
        self._store: dict[str, CacheEntry[T]] = {}

    def set(self, key: str, value: T, ttl: float = math.inf) -> None:
        self._store[key] = CacheEntry(value, _now_ms() + ttl)

    def has(self, key: str) -> bool:
        entry = self._store.get(key)
        if entry is None:
            return False
        if _now_ms() < entry.expires_at:
            return True
        del self._store[key]
        return False

    def get(self, key: str) -> T | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if _now_ms() < entry.expires_at:
            return entry.value
        del self._store[key]
        return None

    def clear_expired(self) -> None:
        now = _now_ms()
        expired = [k for k, e in self._store.items() if e.expires_at <= now]
        for key in expired:
            del self._store[key]

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)


@dataclass(frozen=True)
class Ok:
    value: Any
    is_async: bool = False


@dataclass(frozen=True)
class Err:
    error: BaseException
    is_async: bool = False


MemoResult = Union[Ok, Err]


async def _replay(result: MemoResult) -> Any:
    if isinstance(result, Err):
        raise result.error
    return result.value


class Memoizer:
    """Scoped memoization over TTLCache.

    Both returned values and raised exceptions are memoized. Producers may be
    plain callables or return awaitables; in the latter case the query returns
    a coroutine that stores the settled outcome. Concurrent misses are not
    coalesced: each one invokes its producer.
    """

    def __init__(self):
        self._scopes: dict[str, TTLCache[MemoResult]] = {}

    def get_scope(self, key: str = "") -> Callable[..., Any]:
        if key not in self._scopes:
            self._scopes[key] = TTLCache()
        return self.bind_query(key)

    def has_scope(self, key: str = "") -> bool:
        return key in self._scopes

    def delete_scope(self, key: str = "") -> None:
        self._scopes.pop(key, None)

    def clear_expired(self) -> None:
        for scope in self._scopes.values():
            scope.clear_expired()

    def bind_query(self, scope_key: str) -> Callable[..., Any]:
        def memo(query_key: str, *args: Any, ttl: float = math.inf) -> Any:
            if len(args) == 1:
                query_args: list[QueryArgument] = []
                producer = args[0]
            elif len(args) == 2:
                query_args, producer = args
            else:
                raise TypeError("memo() expects (key, producer) or (key, args, producer)")
            return self.query(scope_key, query_key, query_args, producer, ttl=ttl)

        return memo

    @property
    def scope_count(self) -> int:
        return len(self._scopes)

    def query(
        self,
        scope_key: str,
        query_key: str,
        query_args: list[QueryArgument] | tuple[QueryArgument, ...],
        producer: Callable[[], T | Awaitable[T]],
        ttl: float = math.inf,
    ) -> Any:
        scope = self._scopes.get(scope_key)
        if scope is None:
            raise UninitializedScopeError(scope_key)

        key = self._hash(query_key, query_args)

        # Entries are wrapped, so a memoized None is still a hit
        cached = scope.get(key)
        if cached is not None:
            if cached.is_async:
                return _replay(cached)
            if isinstance(cached, Err):
                raise cached.error
            return cached.value

        try:
            result = producer()
        except Exception as e:
            scope.set(key, Err(e), ttl)
            raise

        if inspect.isawaitable(result):
            return self._settle(scope, key, result, ttl)

        scope.set(key, Ok(result), ttl)
        return result

    @staticmethod
    async def _settle(
        scope: TTLCache[MemoResult], key: str, awaitable: Awaitable[T], ttl: float
    ) -> T:
        try:
            value = await awaitable
        except Exception as e:
            scope.set(key, Err(e, is_async=True), ttl)
            raise
        scope.set(key, Ok(value, is_async=True), ttl)
        return value

    @staticmethod
    def _hash(query_key: str, query_args) -> str:
        for arg in query_args:
            if isinstance(arg, bool) or not isinstance(arg, (str, int, float)):
                raise TypeError(
                    f"Memoized query arguments must be str/int/float, got {type(arg).__name__}"
                )
        raw = ".".join([query_key, *(str(a) for a in query_args)])
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()
