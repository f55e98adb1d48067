"""Unit tests for MemoryResultStore.

Tests cover outcome storage, lock semantics, TTL expiry via an injected
clock and cleanup.
"""

import asyncio

import pytest

from idempotency_coordinator.models import CachedOutcome
from idempotency_coordinator.storage.base import ResultStore
from idempotency_coordinator.storage.memory import MemoryResultStore

KEY = "idempotency:orders:k1"


@pytest.fixture
def cached() -> CachedOutcome:
    return CachedOutcome(status_code=201, body='{"id":1}', body_fingerprint="a" * 64)


def test_implements_protocol(store):
    assert isinstance(store, ResultStore)


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get(KEY) is None

    @pytest.mark.asyncio
    async def test_put_then_get(self, store, cached):
        await store.put(KEY, cached, ttl_seconds=60)
        assert await store.get(KEY) == cached

    @pytest.mark.asyncio
    async def test_outcome_expires(self, store, clock, cached):
        await store.put(KEY, cached, ttl_seconds=60)
        clock.advance(59)
        assert await store.get(KEY) == cached
        clock.advance(1)
        assert await store.get(KEY) is None

    @pytest.mark.asyncio
    async def test_get_ignores_lock_entry(self, store):
        await store.try_lock(KEY, ttl_seconds=30, token="t1")
        assert await store.get(KEY) is None
        assert await store.get(KEY + ":lock") is None


class TestLocks:
    @pytest.mark.asyncio
    async def test_first_try_lock_wins(self, store):
        assert await store.try_lock(KEY, ttl_seconds=30, token="t1") is True
        assert await store.try_lock(KEY, ttl_seconds=30, token="t2") is False

    @pytest.mark.asyncio
    async def test_unlock_allows_relock(self, store):
        await store.try_lock(KEY, ttl_seconds=30, token="t1")
        await store.unlock(KEY, "t1")
        assert await store.try_lock(KEY, ttl_seconds=30, token="t2") is True

    @pytest.mark.asyncio
    async def test_unlock_missing_lock_is_noop(self, store):
        await store.unlock(KEY, "t1")
        assert await store.is_locked(KEY) is False

    @pytest.mark.asyncio
    async def test_unlock_with_other_token_keeps_lock(self, store):
        await store.try_lock(KEY, ttl_seconds=30, token="t1")
        await store.unlock(KEY, "t2")
        assert await store.is_locked(KEY) is True

    @pytest.mark.asyncio
    async def test_expired_holder_cannot_unlock_new_holder(self, store, clock):
        await store.try_lock(KEY, ttl_seconds=5, token="first")
        clock.advance(6)
        assert await store.try_lock(KEY, ttl_seconds=5, token="second") is True

        await store.unlock(KEY, "first")

        assert await store.is_locked(KEY) is True
        assert await store.try_lock(KEY, ttl_seconds=5, token="third") is False

    @pytest.mark.asyncio
    async def test_lock_expires(self, store, clock):
        await store.try_lock(KEY, ttl_seconds=5, token="t1")
        clock.advance(5)
        assert await store.is_locked(KEY) is False
        assert await store.try_lock(KEY, ttl_seconds=5, token="t2") is True

    @pytest.mark.asyncio
    async def test_lock_is_independent_of_outcome(self, store, cached):
        await store.put(KEY, cached, ttl_seconds=60)
        assert await store.try_lock(KEY, ttl_seconds=5, token="t1") is True
        await store.unlock(KEY, "t1")
        assert await store.get(KEY) == cached

    @pytest.mark.asyncio
    async def test_concurrent_try_lock_single_winner(self):
        store = MemoryResultStore()
        results = await asyncio.gather(
            *(store.try_lock(KEY, ttl_seconds=30, token=f"t{i}") for i in range(50))
        )
        assert results.count(True) == 1


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_removes_expired_only(self, store, clock, cached):
        await store.put("idempotency:a", cached, ttl_seconds=10)
        await store.put("idempotency:b", cached, ttl_seconds=100)
        await store.try_lock("idempotency:c", ttl_seconds=10, token="t1")
        clock.advance(10)

        removed = await store.cleanup_expired()

        assert removed == 2
        assert len(store) == 1
        assert await store.get("idempotency:b") == cached

    @pytest.mark.asyncio
    async def test_cleanup_empty_store(self, store):
        assert await store.cleanup_expired() == 0
