"""Core type definitions for the idempotency coordinator.

This module provides the data structures shared by the coordinator, the
result stores and the transport adapters: per call-site options, operation
outcomes and the cached outcome persisted in the store.

Examples:
    Declaring options for an endpoint::

        from idempotency_coordinator.models import IdempotencyOptions

        options = IdempotencyOptions(
            key_prefix="payments",
            ttl_seconds=86400,
            include_body=True,
        )

    Building a cached outcome from a completed operation::

        cached = CachedOutcome(
            status_code=201,
            body='{"id": 1}',
            body_fingerprint="a" * 64,
        )
        cached.model_dump_json(by_alias=True)
        # '{"statusCode":201,"body":"{\\"id\\": 1}","bodyHash":"aaaa..."}'
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_HEADER_NAME = "Idempotency-Key"
DEFAULT_TTL_SECONDS = 3600
MAX_TTL_SECONDS = 604800


def is_success_status(status_code: int) -> bool:
    """Return True for 2xx status codes.

    Examples:
        >>> is_success_status(201)
        True
        >>> is_success_status(400)
        False
    """
    return 200 <= status_code < 300


class IdempotencyOptions(BaseModel):
    """Per call-site configuration of idempotent execution.

    Options are immutable and supplied by the caller for each protected
    operation. All defaults are fixed constants.

    Attributes:
        header_name: Name of the header (or identifier) carrying the key.
        key_prefix: Namespace inserted between ``idempotency`` and the raw key.
        ttl_seconds: Lifetime of a cached outcome in seconds.
        lock_ttl_seconds: Lifetime of the execution lock in seconds. Falls
            back to ``ttl_seconds`` when not set.
        mandatory: Reject requests without a key instead of passing them through.
        include_body: Verify the request payload fingerprint on replay.
        success_predicate: Decides which status codes are cached.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    header_name: str = Field(
        default=DEFAULT_HEADER_NAME,
        min_length=1,
        description="Header or identifier name carrying the idempotency key",
    )
    key_prefix: str = Field(
        default="",
        description="Namespace for derived storage keys",
        examples=["payments", "orders"],
    )
    ttl_seconds: int = Field(
        default=DEFAULT_TTL_SECONDS,
        ge=1,
        le=MAX_TTL_SECONDS,
        description="Time-to-live of cached outcomes in seconds",
    )
    lock_ttl_seconds: int | None = Field(
        default=None,
        ge=1,
        le=MAX_TTL_SECONDS,
        description="Time-to-live of the execution lock in seconds",
    )
    mandatory: bool = Field(
        default=True,
        description="Whether a missing key is rejected",
    )
    include_body: bool = Field(
        default=False,
        description="Whether the request payload fingerprint is verified",
    )
    success_predicate: Callable[[int], bool] = Field(
        default=is_success_status,
        description="Predicate selecting which status codes are cached",
    )

    @property
    def effective_lock_ttl_seconds(self) -> int:
        """Lock TTL actually used for ``try_lock``."""
        if self.lock_ttl_seconds is None:
            return self.ttl_seconds
        return self.lock_ttl_seconds


class Outcome(BaseModel):
    """Result of a protected operation, as returned to the caller.

    The body is opaque to the coordinator: the caller serializes it before
    handing it over and gets exactly the same string back on replay.

    Attributes:
        status_code: Protocol status code (e.g. 200, 201, 400).
        body: Serialized response body.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(..., ge=100, le=599, examples=[200, 201, 400])
    body: str = Field(default="", examples=['{"id": 1}'])

    @classmethod
    def coerce(cls, value: Any) -> "Outcome":
        """Normalize an operation's return value into an ``Outcome``.

        Accepts an ``Outcome`` (returned unchanged) or a
        ``(status_code, body)`` pair. Bytes bodies are decoded as UTF-8.

        Raises:
            TypeError: If the value has any other shape.

        Examples:
            >>> Outcome.coerce((201, '{"id": 1}')).status_code
            201
        """
        if isinstance(value, Outcome):
            return value
        if isinstance(value, tuple) and len(value) == 2:
            status_code, body = value
            if isinstance(body, (bytes, bytearray)):
                body = bytes(body).decode("utf-8")
            return cls(status_code=status_code, body=body)
        raise TypeError(
            f"Operation must return an Outcome or a (status_code, body) pair, "
            f"got {type(value).__name__}"
        )


class CachedOutcome(BaseModel):
    """Outcome persisted in the result store for replay.

    Written once per storage key after the first successful execution and
    never mutated; it disappears when the store expires it. The JSON form
    uses the ``statusCode``/``body``/``bodyHash`` field names.

    Attributes:
        status_code: Status code of the original response.
        body: Serialized body of the original response.
        body_fingerprint: Fingerprint of the request payload, when body
            verification was enabled and a payload was present.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: int = Field(..., alias="statusCode", ge=100, le=599)
    body: str = Field(default="")
    body_fingerprint: str | None = Field(
        default=None,
        alias="bodyHash",
        description="SHA-256 hex digest of the request payload",
    )

    @field_validator("body_fingerprint")
    @classmethod
    def validate_fingerprint(cls, v: str | None) -> str | None:
        """Reject empty fingerprints; absence is expressed as None.

        Raises:
            ValueError: If the fingerprint is an empty string.
        """
        if v is not None and not v:
            raise ValueError("body_fingerprint must be None or a non-empty string")
        return v

    def to_outcome(self) -> Outcome:
        """Return the replayable ``(status_code, body)`` part."""
        return Outcome(status_code=self.status_code, body=self.body)

    def to_json(self) -> str:
        """Serialize using the store layout field names."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "CachedOutcome":
        """Parse a stored JSON document.

        Raises:
            pydantic.ValidationError: If the document is malformed.
        """
        return cls.model_validate_json(data)
