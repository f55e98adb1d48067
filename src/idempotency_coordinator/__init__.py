"""
Idempotency coordinator for Python services.

This package guarantees at-most-once execution of side-effecting operations
per client-supplied idempotency key, replaying the original result for
retries. Coordination happens through a shared result store, so it holds
across independent service instances.
"""

from idempotency_coordinator.config import CoordinatorConfig
from idempotency_coordinator.core.coordinator import IdempotencyCoordinator
from idempotency_coordinator.core.decorator import idempotent
from idempotency_coordinator.exceptions import (
    BodyMismatchError,
    ConflictError,
    ErrorKind,
    FingerprintError,
    IdempotencyError,
    KeyMissingError,
    StoreUnavailableError,
)
from idempotency_coordinator.fingerprint import compute_fingerprint
from idempotency_coordinator.keys import derive_key
from idempotency_coordinator.models import CachedOutcome, IdempotencyOptions, Outcome

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BodyMismatchError",
    "CachedOutcome",
    "ConflictError",
    "CoordinatorConfig",
    "ErrorKind",
    "FingerprintError",
    "IdempotencyCoordinator",
    "IdempotencyError",
    "IdempotencyOptions",
    "KeyMissingError",
    "Outcome",
    "StoreUnavailableError",
    "compute_fingerprint",
    "derive_key",
    "idempotent",
]
