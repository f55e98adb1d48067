"""Result stores for the idempotency coordinator.

This package provides store backends for cached outcomes and execution
locks. All stores implement the ResultStore protocol defined in base.py.

Available Stores:
    - MemoryResultStore: In-process store with TTL expiry
    - RedisResultStore: Redis-based distributed store
"""

from idempotency_coordinator.storage.base import ResultStore
from idempotency_coordinator.storage.factory import create_store
from idempotency_coordinator.storage.memory import MemoryResultStore
from idempotency_coordinator.storage.redis_store import RedisResultStore

__all__ = [
    "ResultStore",
    "MemoryResultStore",
    "RedisResultStore",
    "create_store",
]
