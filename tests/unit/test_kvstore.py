"""Unit tests for the key-value stores backing pending OTP codes."""

from unittest.mock import AsyncMock

import pytest

from workwave.core.kvstore import InMemoryKeyValueStore, RedisKeyValueStore


class TestInMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        store = InMemoryKeyValueStore()
        await store.set("otp:+911", "123456")

        assert await store.get("otp:+911") == "123456"
        assert await store.delete("otp:+911") is True
        assert await store.delete("otp:+911") is False
        assert await store.get("otp:+911") is None

    @pytest.mark.asyncio
    async def test_compare_and_delete_only_on_match(self):
        store = InMemoryKeyValueStore()
        await store.set("k", "v1")

        assert await store.compare_and_delete("k", "nope") is False
        assert await store.get("k") == "v1"
        assert await store.compare_and_delete("k", "v1") is True
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_ttl_expiry(self):
        clock = [50.0]
        store = InMemoryKeyValueStore(clock=lambda: clock[0])
        await store.set("k", "v", ttl_seconds=10)

        clock[0] += 9
        assert await store.get("k") == "v"
        clock[0] += 2
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self):
        clock = [0.0]
        store = InMemoryKeyValueStore(clock=lambda: clock[0])
        await store.set("k", "v")

        clock[0] += 10 ** 9
        assert await store.get("k") == "v"


class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self):
        redis = AsyncMock()
        redis.get.return_value = "654321"
        store = RedisKeyValueStore(redis, prefix="ww:")

        await store.set("otp:+911", "654321", ttl_seconds=60)
        value = await store.get("otp:+911")

        redis.set.assert_awaited_once_with("ww:otp:+911", "654321", ex=60)
        redis.get.assert_awaited_once_with("ww:otp:+911")
        assert value == "654321"

    @pytest.mark.asyncio
    async def test_compare_and_delete_uses_single_script(self):
        redis = AsyncMock()
        redis.eval.return_value = 1
        store = RedisKeyValueStore(redis)

        assert await store.compare_and_delete("otp:+911", "654321") is True
        args = redis.eval.await_args.args
        assert args[1:] == (1, "workwave:otp:+911", "654321")

        redis.eval.return_value = 0
        assert await store.compare_and_delete("otp:+911", "000000") is False
