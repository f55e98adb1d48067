"""Result store construction from configuration."""

from idempotency_coordinator.config import CoordinatorConfig
from idempotency_coordinator.storage.base import ResultStore
from idempotency_coordinator.storage.memory import MemoryResultStore
from idempotency_coordinator.storage.redis_store import RedisResultStore


def create_store(config: CoordinatorConfig) -> ResultStore:
    """Build the store selected by ``config.store_backend``.

    Examples:
        >>> isinstance(create_store(CoordinatorConfig()), MemoryResultStore)
        True
    """
    if config.store_backend == "redis":
        return RedisResultStore.from_url(config.redis_url)
    return MemoryResultStore()
