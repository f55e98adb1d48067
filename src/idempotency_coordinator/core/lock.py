"""Scoped execution lock over a result store.

``StoreLock`` is an async context manager around ``try_lock``/``unlock``.
Entering acquires the lock or raises ConflictError; leaving releases it
exactly once, whether the body returned, raised or was cancelled. Each
acquisition stores a fresh token, and release only removes the lock while it
still holds that token, so a holder whose lock expired cannot release the
lock of the next holder. A failed release is logged and dropped: the lock
TTL removes it eventually.

Examples:
    Running an operation under the lock::

        async with StoreLock(store, storage_key, raw_key, ttl_seconds=30):
            outcome = await operation()
"""

import uuid
from types import TracebackType

from idempotency_coordinator.exceptions import ConflictError, StoreUnavailableError
from idempotency_coordinator.observability.logging import get_logger
from idempotency_coordinator.observability.metrics import locks_held, record_store_error
from idempotency_coordinator.storage.base import ResultStore

logger = get_logger(__name__)


class StoreLock:
    """Execution lock for one storage key.

    Attributes:
        store: Store holding the lock entry.
        key: Storage key being protected.
        raw_key: Client-supplied key, used in ConflictError.
        ttl_seconds: Lifetime of the lock entry.
        token: Value stored in the lock entry by the current acquisition.
    """

    def __init__(self, store: ResultStore, key: str, raw_key: str, ttl_seconds: int) -> None:
        self.store = store
        self.key = key
        self.raw_key = raw_key
        self.ttl_seconds = ttl_seconds
        self.token: str | None = None
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    async def acquire(self) -> None:
        """Acquire the lock.

        Raises:
            ConflictError: If another execution holds the lock.
            StoreUnavailableError: If the store cannot be reached.
        """
        token = str(uuid.uuid4())
        acquired = await self.store.try_lock(self.key, self.ttl_seconds, token)
        if not acquired:
            raise ConflictError(self.raw_key)
        self.token = token
        self._held = True
        locks_held.inc()
        logger.debug("idempotency.lock_acquired", key=self.key, ttl_seconds=self.ttl_seconds)

    async def __aenter__(self) -> "StoreLock":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()

    async def release(self) -> None:
        """Release the lock if held. Calling it again is a no-op."""
        if not self._held:
            return
        self._held = False
        locks_held.dec()
        try:
            await self.store.unlock(self.key, self.token)
        except StoreUnavailableError as e:
            record_store_error("unlock")
            logger.warning(
                "idempotency.unlock_failed",
                key=self.key,
                error=e.message,
            )
        else:
            logger.debug("idempotency.lock_released", key=self.key)
