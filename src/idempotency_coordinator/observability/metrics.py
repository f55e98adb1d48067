"""Prometheus metrics for the idempotency coordinator.

This module provides Prometheus metrics to monitor coordinator behavior.
Metrics include:

- Decision counters by result (executed, replayed, conflict, degraded, ...)
- Operation execution time histogram
- Store error counter by store operation
- Held locks gauge

Store outages are never surfaced to callers, so ``store_errors_total`` and
the ``degraded`` result are the way to observe them.

Examples:
    Recording a replayed request::

        from idempotency_coordinator.observability.metrics import record_decision

        record_decision("replayed")

    Recording a store failure::

        from idempotency_coordinator.observability.metrics import record_store_error

        record_store_error("get")
"""

from prometheus_client import Counter, Gauge, Histogram

# Labels: result (executed, replayed, passthrough, degraded, conflict,
# body_mismatch, key_missing, failed)
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of executions handled by the idempotency coordinator",
    ["result"],
)

# Only tracks operations actually run under a lock
execution_seconds = Histogram(
    "idempotency_execution_seconds",
    "Protected operation execution time in seconds",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

# Labels: operation (get, put, try_lock, unlock)
store_errors_total = Counter(
    "idempotency_store_errors_total",
    "Total number of failed result store operations",
    ["operation"],
)

locks_held = Gauge(
    "idempotency_locks_held",
    "Number of execution locks currently held by this process",
)


def record_decision(result: str) -> None:
    """Record the coordinator's decision for one execute() call.

    Args:
        result: The result label.

    Examples:
        >>> record_decision("executed")
        >>> record_decision("conflict")
    """
    requests_total.labels(result=result).inc()


def record_execution_time(seconds: float) -> None:
    """Record how long a protected operation ran."""
    execution_seconds.observe(seconds)


def record_store_error(operation: str) -> None:
    """Record a failed store call.

    Args:
        operation: Name of the ResultStore method that failed.
    """
    store_errors_total.labels(operation=operation).inc()
