"""Core logic of the idempotency coordinator.

This package contains the framework-agnostic decision logic:
- Coordinator: lookup, lock, delegate, write-back
- Lock: scoped execution lock over a result store
- Decorator: composing the coordinator around async functions

Transport adapters (see ``idempotency_coordinator.adapters``) wrap it for
specific web frameworks.
"""

from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.core.decorator import idempotent
from idempotency_coordinator.core.lock import StoreLock

__all__ = ["IdempotencyCoordinator", "StoreLock", "idempotent"]
