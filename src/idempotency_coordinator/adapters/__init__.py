"""Framework adapters for the idempotency coordinator.

This package provides transport-layer wrappers that plug the coordinator
into web frameworks and translate its errors into HTTP responses.
"""

from idempotency_coordinator.adapters.asgi import ASGIIdempotencyMiddleware

__all__ = ["ASGIIdempotencyMiddleware"]
