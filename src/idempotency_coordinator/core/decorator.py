"""Decorator composing the coordinator around an async function.

The decorated function keeps its signature; callers pass the idempotency key
and payload as ordinary arguments and ``key``/``payload`` extractors pick
them out.

Examples:
    Protecting a service method::

        coordinator = IdempotencyCoordinator(store)

        @idempotent(
            coordinator,
            IdempotencyOptions(key_prefix="payments", include_body=True),
            key=lambda request, idempotency_key=None: idempotency_key,
            payload=lambda request, idempotency_key=None: request,
        )
        async def create_payment(request: PaymentRequest, idempotency_key: str | None = None):
            payment = await payments.create(request)
            return 201, payment.model_dump_json()

        outcome = await create_payment(request, idempotency_key="k1")
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any

from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.models import IdempotencyOptions, Outcome


def idempotent(
    coordinator: IdempotencyCoordinator,
    options: IdempotencyOptions | None = None,
    *,
    key: Callable[..., str | None],
    payload: Callable[..., Any] | None = None,
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Outcome]]]:
    """Wrap an async function so it runs at most once per idempotency key.

    Args:
        coordinator: Coordinator executing the wrapped calls.
        options: Call-site options; the coordinator's defaults when None.
        key: Extracts the raw idempotency key from the call arguments.
        payload: Extracts the request payload from the call arguments.

    Returns:
        A decorator. The wrapped function returns an Outcome.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Outcome]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Outcome:
            raw_key = key(*args, **kwargs)
            body = payload(*args, **kwargs) if payload is not None else None

            async def operation() -> Any:
                return await func(*args, **kwargs)

            return await coordinator.execute(raw_key, operation, options=options, payload=body)

        return wrapper

    return decorator
