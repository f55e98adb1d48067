"""Custom exceptions for the idempotency coordinator.

This module defines the exception hierarchy raised at the coordinator
boundary. Every exception carries an ``ErrorKind`` tag so that a transport
layer can translate it into a protocol response without inspecting the
concrete class.

Examples:
    Translating coordinator errors in a transport layer::

        from idempotency_coordinator.exceptions import ErrorKind, IdempotencyError

        STATUS = {
            ErrorKind.KEY_MISSING: 400,
            ErrorKind.BODY_MISMATCH: 422,
            ErrorKind.CONFLICT: 409,
        }

        try:
            outcome = await coordinator.execute(key, operation)
        except IdempotencyError as e:
            return Response(status_code=STATUS[e.kind], content=e.message)

    Handling a store failure inside a backend::

        from idempotency_coordinator.exceptions import StoreUnavailableError

        try:
            raw = await redis.get(key)
        except RedisError as e:
            raise StoreUnavailableError(f"GET {key} failed: {e}", cause=e) from e
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Tag identifying which failure a coordinator error represents.

    Attributes:
        KEY_MISSING: The client omitted a mandatory idempotency key.
        BODY_MISMATCH: The key was reused for a different request payload.
        CONFLICT: An execution for the same key is already in flight.
        STORE_UNAVAILABLE: The result store could not be reached.
        INVALID_PAYLOAD: The request payload could not be fingerprinted.
    """

    KEY_MISSING = "key_missing"
    BODY_MISMATCH = "body_mismatch"
    CONFLICT = "conflict"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_PAYLOAD = "invalid_payload"


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    All exceptions raised by the coordinator inherit from this base class,
    allowing callers to catch every coordinator error with a single except
    clause and dispatch on ``kind``.

    Attributes:
        message: Human-readable error description.
        kind: The error tag used by transport layers.
    """

    kind: ErrorKind | None = None

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class KeyMissingError(IdempotencyError):
    """A mandatory idempotency key was not supplied.

    The client is expected to correct the request by sending the key, so
    transports usually surface this as HTTP 400.

    Attributes:
        header_name: Name of the header (or identifier) that was missing.
    """

    kind = ErrorKind.KEY_MISSING

    def __init__(self, header_name: str) -> None:
        super().__init__(f"Missing required header: {header_name}")
        self.header_name = header_name


class BodyMismatchError(IdempotencyError):
    """The idempotency key was reused with a materially different payload.

    Raised only when body verification is enabled and both the cached and
    the current fingerprints are known. Transports usually surface this as
    HTTP 422.

    Attributes:
        key: The raw idempotency key supplied by the client.
        stored_fingerprint: Fingerprint recorded with the cached outcome.
        request_fingerprint: Fingerprint of the current request payload.

    Examples:
        Raising a mismatch::

            if cached.body_fingerprint != fingerprint:
                raise BodyMismatchError(
                    key=raw_key,
                    stored_fingerprint=cached.body_fingerprint,
                    request_fingerprint=fingerprint,
                )
    """

    kind = ErrorKind.BODY_MISMATCH

    def __init__(
        self,
        key: str,
        stored_fingerprint: str,
        request_fingerprint: str,
    ) -> None:
        """Initialize the mismatch error with details.

        Args:
            key: The raw idempotency key supplied by the client.
            stored_fingerprint: Fingerprint recorded with the cached outcome.
            request_fingerprint: Fingerprint of the current request payload.
        """
        super().__init__(f"Idempotency key '{key}' was already used with a different request body")
        self.key = key
        self.stored_fingerprint = stored_fingerprint
        self.request_fingerprint = request_fingerprint


class ConflictError(IdempotencyError):
    """An identical request is currently being processed.

    Raised when the cache lookup missed but the execution lock for the key
    is already held. The condition is transient; the client should retry
    later. Transports usually surface this as HTTP 409.

    Attributes:
        key: The raw idempotency key supplied by the client.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, key: str) -> None:
        super().__init__(f"A request with idempotency key '{key}' is already being processed")
        self.key = key


class StoreUnavailableError(IdempotencyError):
    """Result store operation failed.

    This exception is raised by store backends when the underlying service
    cannot complete the requested operation (network failures, timeouts,
    authentication errors). The coordinator never surfaces it to callers
    unless configured to fail closed; instead it degrades to running the
    operation without idempotency protection.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the store error.

    Examples:
        Raising a store error::

            try:
                await redis.set(key, value, ex=ttl)
            except RedisError as e:
                raise StoreUnavailableError(
                    message=f"Failed to write key to Redis: {e}",
                    cause=e,
                ) from e
    """

    kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the store error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the store error.
        """
        super().__init__(message)
        self.cause = cause


class FingerprintError(IdempotencyError):
    """The request payload could not be canonicalized for fingerprinting."""

    kind = ErrorKind.INVALID_PAYLOAD
