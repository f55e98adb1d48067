"""Redis-backed result store.

This module implements the ResultStore protocol on top of
``redis.asyncio``. Every protocol method maps onto exactly one Redis
command or script, so each is atomic on the server:

    - get: ``GET key``
    - put: ``SET key json EX ttl``
    - try_lock: ``SET key:lock token NX EX ttl``
    - unlock: ``EVAL`` of a compare-and-delete script on ``key:lock``

Any ``redis.exceptions.RedisError`` is re-raised as StoreUnavailableError.
A cached value that cannot be decoded is treated as a miss.

Examples:
    Creating a store from a URL::

        from idempotency_coordinator.storage.redis_store import RedisResultStore

        store = RedisResultStore.from_url("redis://localhost:6379/0")
        coordinator = IdempotencyCoordinator(store)

        # on shutdown
        await store.close()
"""

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from idempotency_coordinator.exceptions import StoreUnavailableError
from idempotency_coordinator.keys import lock_key
from idempotency_coordinator.models import CachedOutcome
from idempotency_coordinator.observability.logging import get_logger
from idempotency_coordinator.storage.base import ResultStore

logger = get_logger(__name__)

# Deletes the lock only while it still holds the caller's token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisResultStore(ResultStore):
    """Result store backed by a Redis server.

    Attributes:
        redis: The ``redis.asyncio.Redis`` client used for all commands.
    """

    def __init__(self, redis: Redis) -> None:
        """Initialize the store.

        Args:
            redis: An asyncio Redis client. Responses may be bytes or str.
        """
        self.redis = redis

    @classmethod
    def from_url(cls, url: str, **kwargs: object) -> "RedisResultStore":
        """Create a store with a client built from a Redis URL.

        Args:
            url: Redis connection URL, e.g. ``redis://localhost:6379/0``.
            **kwargs: Extra keyword arguments for ``Redis.from_url``.
        """
        return cls(Redis.from_url(url, decode_responses=True, **kwargs))

    async def get(self, key: str) -> CachedOutcome | None:
        """Fetch and decode the cached outcome stored at ``key``.

        Raises:
            StoreUnavailableError: If the GET command fails.
        """
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to read key {key} from Redis: {e}", cause=e) from e

        if raw is None:
            return None

        try:
            return CachedOutcome.from_json(raw)
        except ValidationError as e:
            logger.warning(
                "redis_store.undecodable_entry",
                key=key,
                error=str(e),
            )
            return None

    async def put(self, key: str, outcome: CachedOutcome, ttl_seconds: int) -> None:
        """Write ``outcome`` at ``key`` with an expiry.

        Raises:
            StoreUnavailableError: If the SET command fails.
        """
        try:
            await self.redis.set(key, outcome.to_json(), ex=ttl_seconds)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to write key {key} to Redis: {e}", cause=e) from e

    async def try_lock(self, key: str, ttl_seconds: int, token: str) -> bool:
        """Take the lock with ``SET NX EX``, storing ``token`` as its value.

        Returns:
            True if the lock key was created by this call.

        Raises:
            StoreUnavailableError: If the SET command fails.
        """
        try:
            acquired = await self.redis.set(lock_key(key), token, nx=True, ex=ttl_seconds)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to acquire lock for {key}: {e}", cause=e) from e
        return bool(acquired)

    async def unlock(self, key: str, token: str) -> None:
        """Delete the lock key if its value is still ``token``.

        Raises:
            StoreUnavailableError: If the release script fails.
        """
        try:
            released = await self.redis.eval(RELEASE_LOCK_SCRIPT, 1, lock_key(key), token)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to release lock for {key}: {e}", cause=e) from e
        if not released:
            logger.info("redis_store.lock_not_owned", key=key)

    async def close(self) -> None:
        """Close the underlying client's connections."""
        await self.redis.aclose()
