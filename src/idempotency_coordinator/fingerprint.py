"""Request payload fingerprinting for idempotency.

A fingerprint is the SHA-256 hex digest of the canonical serialized form of a
request payload. It is stored next to a cached outcome and compared on replay
to detect an idempotency key being reused for a different request.

Canonicalization:
    1. ``bytes``/``bytearray``/``memoryview``: used as-is
    2. ``str``: UTF-8 encoded
    3. pydantic models: ``model_dump(mode="json")``, then step 4
    4. anything else: JSON with sorted keys and compact separators
"""

import hashlib
import json
from typing import Any

from pydantic import BaseModel

from idempotency_coordinator.exceptions import FingerprintError


def canonicalize_payload(payload: Any) -> bytes:
    """Serialize a payload into the byte sequence that gets hashed.

    Args:
        payload: Request payload, already materialized by the caller.

    Returns:
        Canonical byte representation of the payload.

    Raises:
        FingerprintError: If the payload is not JSON-serializable.

    Examples:
        >>> canonicalize_payload({"b": 1, "a": 2})
        b'{"a":2,"b":1}'
    """
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")

    try:
        text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise FingerprintError(f"Request payload is not serializable: {e}") from e
    return text.encode("utf-8")


def compute_fingerprint(payload: Any) -> str | None:
    """Compute a deterministic fingerprint for a request payload.

    Args:
        payload: Request payload, or None when the request carries no body.

    Returns:
        Hexadecimal SHA-256 hash string (64 characters), or None when the
        payload is absent. An absent payload never yields an empty string.

    Raises:
        FingerprintError: If the payload cannot be serialized.

    Examples:
        >>> compute_fingerprint(None) is None
        True
        >>> len(compute_fingerprint({"item": "widget"}))
        64
    """
    if payload is None:
        return None
    return hashlib.sha256(canonicalize_payload(payload)).hexdigest()
