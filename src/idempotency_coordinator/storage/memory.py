"""In-memory result store with asyncio concurrency control.

This module provides an in-process implementation of the ResultStore
protocol. Entries expire lazily on access and can be swept with
``cleanup_expired()``.

The MemoryResultStore is suitable for:
    - Single-process applications
    - Development and testing
    - Simulating lock expiry through an injectable clock

For multi-instance deployments use RedisResultStore instead; the memory
store only coordinates callers inside one event loop.

Examples:
    Basic usage::

        from idempotency_coordinator.storage.memory import MemoryResultStore

        store = MemoryResultStore()

        token = str(uuid.uuid4())
        if await store.try_lock("idempotency:k1", ttl_seconds=30, token=token):
            try:
                ...
                await store.put("idempotency:k1", cached, ttl_seconds=3600)
            finally:
                await store.unlock("idempotency:k1", token)

    Simulating time::

        now = [0.0]
        store = MemoryResultStore(clock=lambda: now[0])
        await store.try_lock("idempotency:k1", ttl_seconds=5, token="a")
        now[0] += 6
        assert await store.try_lock("idempotency:k1", ttl_seconds=5, token="b")
"""

import asyncio
import time
from collections.abc import Callable

from idempotency_coordinator.keys import lock_key
from idempotency_coordinator.models import CachedOutcome
from idempotency_coordinator.storage.base import ResultStore


class _Entry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: CachedOutcome | str, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at


class MemoryResultStore(ResultStore):
    """In-memory result store.

    Outcomes and locks share one dictionary, distinguished by the ``:lock``
    key suffix, mirroring the layout used by networked stores.

    Attributes:
        _entries: Mapping of storage keys to entries with expiry deadlines.
        _lock: Lock serializing check-and-set sequences.
        _clock: Monotonic time source in seconds.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source in seconds. Defaults to ``time.monotonic``.
        """
        self._entries: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or time.monotonic

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> CachedOutcome | None:
        """Retrieve a cached outcome by storage key.

        Args:
            key: The storage key to look up.

        Returns:
            The cached outcome if present and not expired, None otherwise.
        """
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, CachedOutcome):
            return None
        return entry.value

    async def put(self, key: str, outcome: CachedOutcome, ttl_seconds: int) -> None:
        """Store an outcome, replacing any previous entry."""
        self._entries[key] = _Entry(outcome, self._clock() + ttl_seconds)

    async def try_lock(self, key: str, ttl_seconds: int, token: str) -> bool:
        """Create the lock entry for ``key`` holding ``token`` unless a live one exists.

        Returns:
            True if the lock was created by this call.
        """
        async with self._lock:
            name = lock_key(key)
            if self._live(name) is not None:
                return False
            self._entries[name] = _Entry(token, self._clock() + ttl_seconds)
            return True

    async def unlock(self, key: str, token: str) -> None:
        """Drop the lock entry for ``key`` if it still holds ``token``."""
        async with self._lock:
            name = lock_key(key)
            entry = self._live(name)
            if entry is not None and entry.value == token:
                del self._entries[name]

    async def is_locked(self, key: str) -> bool:
        """Return True if a live lock exists for ``key``."""
        return self._live(lock_key(key)) is not None

    async def cleanup_expired(self) -> int:
        """Remove expired outcomes and locks.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        async with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
