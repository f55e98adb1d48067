"""Configuration module for the idempotency coordinator.

This module provides the CoordinatorConfig class for process-wide settings:
which result store backend to use, default per call-site options, failure
policy and logging. Per call-site behavior is expressed with
``IdempotencyOptions``; ``CoordinatorConfig.default_options()`` seeds those
from the process configuration.

Example:
    Basic usage with defaults:

        >>> config = CoordinatorConfig()
        >>> config.store_backend
        'memory'

    Custom configuration:

        >>> config = CoordinatorConfig(
        ...     store_backend="redis",
        ...     redis_url="redis://cache:6379/1",
        ...     default_ttl_seconds=86400,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_STORE_BACKEND'] = 'redis'
        >>> os.environ['IDEMPOTENCY_DEFAULT_TTL_SECONDS'] = '600'
        >>> config = CoordinatorConfig.from_env()
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from idempotency_coordinator.models import (
    DEFAULT_HEADER_NAME,
    DEFAULT_TTL_SECONDS,
    MAX_TTL_SECONDS,
    IdempotencyOptions,
)
from idempotency_coordinator.observability.logging import configure_logging

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class CoordinatorConfig(BaseModel):
    """Process-wide configuration for the idempotency coordinator.

    Attributes:
        store_backend: Result store implementation, "memory" or "redis".
        redis_url: Connection URL used when store_backend is "redis".
        default_ttl_seconds: Default lifetime of cached outcomes (1-604800).
        default_lock_ttl_seconds: Default lifetime of execution locks. None
            means the outcome TTL is used.
        header_name: Default header carrying the idempotency key.
        mandatory: Default for rejecting requests without a key.
        fail_closed: Raise StoreUnavailableError when the store is down
            instead of running the operation unprotected.
        log_level: Log level passed to ``configure_logging``.
        json_logs: Emit JSON logs instead of console output.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    store_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Result store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis result store",
    )
    default_ttl_seconds: int = Field(
        default=DEFAULT_TTL_SECONDS,
        description="Default time-to-live of cached outcomes in seconds (1-604800)",
    )
    default_lock_ttl_seconds: int | None = Field(
        default=None,
        description="Default time-to-live of execution locks in seconds",
    )
    header_name: str = Field(
        default=DEFAULT_HEADER_NAME,
        min_length=1,
        description="Default header carrying the idempotency key",
    )
    mandatory: bool = Field(
        default=True,
        description="Reject requests without an idempotency key by default",
    )
    fail_closed: bool = Field(
        default=False,
        description="Raise instead of degrading when the store is unavailable",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit JSON formatted logs",
    )

    model_config = {"frozen": True}

    @field_validator("default_ttl_seconds")
    @classmethod
    def validate_default_ttl_seconds(cls, v: int) -> int:
        """Validate TTL is within acceptable range.

        Raises:
            ValueError: If TTL is not between 1 and 604800 (7 days).
        """
        if not (1 <= v <= MAX_TTL_SECONDS):
            raise ValueError(
                f"default_ttl_seconds must be between 1 and {MAX_TTL_SECONDS} (7 days), got {v}"
            )
        return v

    @field_validator("default_lock_ttl_seconds")
    @classmethod
    def validate_default_lock_ttl_seconds(cls, v: int | None) -> int | None:
        """Validate the lock TTL, when set, is within acceptable range."""
        if v is not None and not (1 <= v <= MAX_TTL_SECONDS):
            raise ValueError(
                f"default_lock_ttl_seconds must be between 1 and {MAX_TTL_SECONDS}, got {v}"
            )
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate the Redis URL scheme.

        Raises:
            ValueError: If the URL does not use a Redis scheme.
        """
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(f"redis_url must start with redis://, rediss:// or unix://, got {v!r}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Normalize and validate the log level."""
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return level

    def default_options(self, **overrides: Any) -> IdempotencyOptions:
        """Build call-site options seeded from this configuration.

        Args:
            **overrides: IdempotencyOptions fields to set explicitly.

        Returns:
            An IdempotencyOptions instance.

        Example:
            >>> config = CoordinatorConfig(default_ttl_seconds=600)
            >>> config.default_options(key_prefix="orders").ttl_seconds
            600
        """
        values: dict[str, Any] = {
            "header_name": self.header_name,
            "ttl_seconds": self.default_ttl_seconds,
            "lock_ttl_seconds": self.default_lock_ttl_seconds,
            "mandatory": self.mandatory,
        }
        values.update(overrides)
        return IdempotencyOptions(**values)

    def apply_logging(self) -> None:
        """Configure structured logging from ``log_level`` and ``json_logs``."""
        configure_logging(level=self.log_level, json_output=self.json_logs)

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "CoordinatorConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix, e.g.
        ``IDEMPOTENCY_STORE_BACKEND``.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            CoordinatorConfig instance populated from environment variables.

        Raises:
            ValueError: If a boolean variable has an unrecognized value.
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "store_backend": str,
            "redis_url": str,
            "default_ttl_seconds": int,
            "default_lock_ttl_seconds": int,
            "header_name": str,
            "mandatory": bool,
            "fail_closed": bool,
            "log_level": str,
            "json_logs": bool,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is None:
                continue
            if field_type is int:
                config_dict[field_name] = int(env_value)
            elif field_type is bool:
                config_dict[field_name] = _parse_bool(env_var, env_value)
            else:
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "CoordinatorConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value, got {value!r}")
