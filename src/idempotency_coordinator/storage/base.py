"""Result store protocol for the idempotency coordinator.

This module defines the interface every store backend must implement to be
used by the coordinator. The contract is deliberately small: four primitives
over a namespaced key, each mapping onto a single operation of a networked
key-value service with per-key TTL.

The ResultStore protocol maps to the following key-value semantics:

    ==============  ==============================================
    Operation       Key-value primitive
    ==============  ==============================================
    get(key)        ``GET key``
    put(key, ...)   ``SET key value EX ttl``
    try_lock(key)   ``SET key:lock token NX EX ttl``
    unlock(key)     ``DEL key:lock`` if it still holds ``token``
    ==============  ==============================================

Examples:
    Implementing a custom store::

        from idempotency_coordinator.models import CachedOutcome
        from idempotency_coordinator.storage.base import ResultStore

        class MyResultStore:
            async def get(self, key: str) -> CachedOutcome | None:
                data = await self.backend.get(key)
                if data is None:
                    return None
                return CachedOutcome.from_json(data)

            async def try_lock(self, key: str, ttl_seconds: int, token: str) -> bool:
                return await self.backend.set_if_absent(lock_key(key), token, ttl_seconds)

            ...

Atomicity Requirements:
    All ResultStore implementations MUST guarantee:

    1. **Atomic lock acquisition**: try_lock() must create the lock entry only
       if it does not exist, as a single atomic step. Of any number of
       concurrent callers, at most one receives True.

    2. **TTL enforcement**: entries written by put() and try_lock() must
       disappear once their TTL elapses. Expired entries are treated as
       non-existent by get() and try_lock().

    3. **Owner-only unlock**: unlock() deletes the lock only while it still
       holds the caller's token, as a single atomic step. A lock that expired
       and was taken by another caller is left alone. Unlocking a missing lock
       is not an error.

    4. **Uniform failures**: backend-specific exceptions must be wrapped in
       StoreUnavailableError. No other exception type may escape.
"""

from typing import Protocol, runtime_checkable

from idempotency_coordinator.models import CachedOutcome

@runtime_checkable
class ResultStore(Protocol):
    """Protocol defining the interface for idempotency result stores.

    All methods are async and must be safe to call concurrently from multiple
    asyncio tasks, threads and processes. Keys passed in are full storage
    keys (see ``idempotency_coordinator.keys.derive_key``); the lock entry
    lives under the same key with a ``:lock`` suffix.

    Error Handling:
        Methods raise StoreUnavailableError for transient failures (network,
        timeouts, authentication). Implementations should NOT raise
        backend-specific exceptions directly.
    """

    async def get(self, key: str) -> CachedOutcome | None:
        """Retrieve a cached outcome by storage key.

        Args:
            key: The storage key to look up.

        Returns:
            The cached outcome if present and not expired, None otherwise.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        ...

    async def put(self, key: str, outcome: CachedOutcome, ttl_seconds: int) -> None:
        """Store an outcome under ``key`` for ``ttl_seconds``.

        Args:
            key: The storage key.
            outcome: The outcome to cache.
            ttl_seconds: Time-to-live in seconds.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        ...

    async def try_lock(self, key: str, ttl_seconds: int, token: str) -> bool:
        """Atomically create the execution lock for ``key`` if absent.

        Args:
            key: The storage key whose lock should be taken.
            ttl_seconds: Lifetime of the lock; bounds how long a crashed
                holder can block other callers.
            token: Value identifying this acquisition, stored in the lock.

        Returns:
            True if this call created the lock, False if it already existed.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        ...

    async def unlock(self, key: str, token: str) -> None:
        """Remove the execution lock for ``key`` if it still holds ``token``.

        A missing lock, or one now held under another token, is left as is.

        Args:
            key: The storage key whose lock should be released.
            token: Token passed to the try_lock() call that took the lock.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        ...
