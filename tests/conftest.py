"""
Pytest configuration and shared fixtures for idempotency_coordinator tests.
"""

import pytest

from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.exceptions import StoreUnavailableError
from idempotency_coordinator.models import CachedOutcome, IdempotencyOptions
from idempotency_coordinator.storage.memory import MemoryResultStore


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStore(MemoryResultStore):
    """Memory store whose operations can be made to fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_on: set[str] = set()
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StoreUnavailableError(f"{operation} failed: connection refused")

    async def get(self, key: str) -> CachedOutcome | None:
        self._check("get")
        return await super().get(key)

    async def put(self, key: str, outcome: CachedOutcome, ttl_seconds: int) -> None:
        self._check("put")
        await super().put(key, outcome, ttl_seconds)

    async def try_lock(self, key: str, ttl_seconds: int, token: str) -> bool:
        self._check("try_lock")
        return await super().try_lock(key, ttl_seconds, token)

    async def unlock(self, key: str, token: str) -> None:
        self._check("unlock")
        await super().unlock(key, token)


class CountingOperation:
    """Async operation returning a fixed outcome and counting invocations."""

    def __init__(self, status_code: int = 200, body: str = '{"ok": true}') -> None:
        self.status_code = status_code
        self.body = body
        self.calls = 0

    async def __call__(self) -> tuple[int, str]:
        self.calls += 1
        return self.status_code, self.body


@pytest.fixture
def sample_idempotency_key() -> str:
    """Provide a sample idempotency key for tests."""
    return "test-key-12345"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryResultStore:
    """Create a fresh memory store driven by the fake clock."""
    return MemoryResultStore(clock=clock)


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def coordinator(store: MemoryResultStore) -> IdempotencyCoordinator:
    return IdempotencyCoordinator(store)


@pytest.fixture
def options() -> IdempotencyOptions:
    return IdempotencyOptions(key_prefix="orders", ttl_seconds=3600)


@pytest.fixture
def body_options() -> IdempotencyOptions:
    return IdempotencyOptions(key_prefix="payments", ttl_seconds=3600, include_body=True)


@pytest.fixture
def make_operation():
    """Factory for counting operations."""
    return CountingOperation
