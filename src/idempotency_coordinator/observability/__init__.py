"""Observability utilities for the idempotency coordinator.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for coordinator decisions and store health
- Structured logging with contextual information
"""

from idempotency_coordinator.observability.logging import configure_logging, get_logger
from idempotency_coordinator.observability.metrics import (
    record_decision,
    record_execution_time,
    record_store_error,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_decision",
    "record_execution_time",
    "record_store_error",
]
