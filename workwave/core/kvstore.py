"""
Key-value stores for short-lived process state
================================================

Pending OTP codes live in one of these stores instead of a module-level
dict so the OTP verifier can be exercised in isolation and shared safely
between concurrent request handlers.

Two implementations:
  - ``InMemoryKeyValueStore``: a dict guarded by an ``asyncio.Lock``.
    Lives for the lifetime of the process.
  - ``RedisKeyValueStore``: ``redis.asyncio`` backed, used when
    ``REDIS_URL`` is configured so several server processes see the
    same pending codes.

Both expose the same async contract: ``get``, ``set``, ``delete`` and an
atomic ``compare_and_delete``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def compare_and_delete(self, key: str, expected: str) -> bool: ...


class InMemoryKeyValueStore:
    """Lock-protected dict with optional per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _read(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._read(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        async with self._lock:
            self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete ``key`` only if its current value equals ``expected``."""
        async with self._lock:
            if self._read(key) != expected:
                return False
            del self._data[key]
            return True

    def __len__(self) -> int:
        return len(self._data)


# KEYS[1] = key, ARGV[1] = expected value
_COMPARE_AND_DELETE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisKeyValueStore:
    """Redis-backed store.  Keys are namespaced with ``prefix``."""

    def __init__(self, redis: Redis, prefix: str = "workwave:") -> None:
        self._redis = redis
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "workwave:") -> "RedisKeyValueStore":
        return cls(Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        await self._redis.set(self._key(key), value, ex=ttl_seconds or None)

    async def delete(self, key: str) -> bool:
        return bool(await self._redis.delete(self._key(key)))

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        deleted = await self._redis.eval(_COMPARE_AND_DELETE_LUA, 1, self._key(key), expected)
        return bool(deleted)

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis key-value store connection closed")
