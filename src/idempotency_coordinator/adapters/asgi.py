"""ASGI middleware adapter for FastAPI and Starlette applications.

This module provides an ASGI middleware wrapper around the idempotency
coordinator. It is the transport layer of the coordinator: it locates the
idempotency key in request headers, hands the request body over for
fingerprinting, runs the downstream application as the protected operation
and translates coordinator errors into HTTP responses.

Error translation:

    ==================  ======
    Error kind          Status
    ==================  ======
    KEY_MISSING         400
    INVALID_PAYLOAD     400
    BODY_MISMATCH       422
    CONFLICT            409
    STORE_UNAVAILABLE   503
    ==================  ======

Only text response bodies are cached; a response whose body is not valid
UTF-8 is returned as-is and not cached.

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotency_coordinator import IdempotencyCoordinator, IdempotencyOptions
        from idempotency_coordinator.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotency_coordinator.storage.redis_store import RedisResultStore

        app = FastAPI()
        coordinator = IdempotencyCoordinator(RedisResultStore.from_url("redis://cache:6379/0"))

        app.add_middleware(
            ASGIIdempotencyMiddleware,
            coordinator=coordinator,
            routes={
                ("POST", "/api/payments"): IdempotencyOptions(
                    key_prefix="payments",
                    include_body=True,
                ),
            },
        )
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.exceptions import ErrorKind, IdempotencyError
from idempotency_coordinator.models import IdempotencyOptions, Outcome
from idempotency_coordinator.observability.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.KEY_MISSING: 400,
    ErrorKind.INVALID_PAYLOAD: 400,
    ErrorKind.BODY_MISMATCH: 422,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE_UNAVAILABLE: 503,
}

REPLAY_HEADER = "Idempotent-Replayed"
CONFLICT_RETRY_AFTER_SECONDS = 1


class _UncacheableResponse(Exception):
    """Carries a downstream response whose body cannot be cached as text."""

    def __init__(self, response: Response) -> None:
        super().__init__("Response body is not UTF-8 text")
        self.response = response


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for idempotent request handling.

    Options are selected per route by exact ``(METHOD, path)`` match. When
    no route matches, ``default_options`` apply to the methods listed in
    ``methods``; all other requests go straight to the application.

    Attributes:
        coordinator: Coordinator running the protected requests.
        routes: Per-route options keyed by ``(METHOD, path)``.
        default_options: Options for unmatched unsafe requests, or None.
        methods: Methods covered by ``default_options``.
    """

    def __init__(
        self,
        app: Any,
        coordinator: IdempotencyCoordinator,
        routes: dict[tuple[str, str], IdempotencyOptions] | None = None,
        default_options: IdempotencyOptions | None = None,
        methods: tuple[str, ...] = ("POST", "PUT", "PATCH", "DELETE"),
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            coordinator: Idempotency coordinator
            routes: Per-route options keyed by ``(METHOD, path)``
            default_options: Options for unsafe requests without a route entry
            methods: HTTP methods covered by default_options
        """
        super().__init__(app)
        self.coordinator = coordinator
        self.routes = {(method.upper(), path): opts for (method, path), opts in (routes or {}).items()}
        self.default_options = default_options
        self.methods = {method.upper() for method in methods}

    def resolve_options(self, method: str, path: str) -> IdempotencyOptions | None:
        """Return the options covering a request, or None if unprotected."""
        method = method.upper()
        options = self.routes.get((method, path))
        if options is not None:
            return options
        if self.default_options is not None and method in self.methods:
            return self.default_options
        return None

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process a request through the coordinator.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        options = self.resolve_options(request.method, request.url.path)
        if options is None:
            return await call_next(request)

        raw_key = request.headers.get(options.header_name)
        payload = await self._read_payload(request) if options.include_body else None
        executed: dict[str, Response] = {}

        async def operation() -> Outcome:
            response = await call_next(request)
            content = await _read_body(response)
            executed["response"] = response
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError:
                raise _UncacheableResponse(_rebuild(response, content)) from None
            return Outcome(status_code=response.status_code, body=text)

        try:
            outcome = await self.coordinator.execute(
                raw_key,
                operation,
                options=options,
                payload=payload,
            )
        except _UncacheableResponse as e:
            return e.response
        except IdempotencyError as e:
            return self._error_response(e)

        if "response" in executed:
            original = executed["response"]
            return _rebuild(original, outcome.body.encode("utf-8"))

        return Response(
            content=outcome.body,
            status_code=outcome.status_code,
            media_type="application/json",
            headers={REPLAY_HEADER: "true"},
        )

    async def _read_payload(self, request: Request) -> Any:
        """Return the request body for fingerprinting.

        JSON bodies are decoded so that key order and whitespace do not
        affect the fingerprint. Empty bodies count as no payload.
        """
        body = await request.body()
        if not body:
            return None
        content_type = request.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return json.loads(body)
            except ValueError:
                logger.debug("asgi.payload_not_json", path=request.url.path)
        return body

    def _error_response(self, error: IdempotencyError) -> Response:
        status_code = STATUS_BY_KIND.get(error.kind, 500) if error.kind else 500
        headers: dict[str, str] = {}
        if error.kind is ErrorKind.CONFLICT:
            headers["retry-after"] = str(CONFLICT_RETRY_AFTER_SECONDS)
        return JSONResponse(
            status_code=status_code,
            content={"message": error.message},
            headers=headers,
        )


async def _read_body(response: Response) -> bytes:
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is None:
        return bytes(response.body)
    chunks: list[bytes] = []
    async for chunk in body_iterator:
        chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk))
    return b"".join(chunks)


def _rebuild(response: Response, content: bytes) -> Response:
    # raw_headers keeps repeated headers such as Set-Cookie
    rebuilt = Response(content=content, status_code=response.status_code)
    content_length = [(k, v) for k, v in rebuilt.raw_headers if k == b"content-length"]
    rebuilt.raw_headers = [
        (k, v) for k, v in response.raw_headers if k.lower() != b"content-length"
    ] + content_length
    return rebuilt
