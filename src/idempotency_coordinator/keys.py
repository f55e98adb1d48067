"""Storage key derivation.

Storage keys are namespaced under ``idempotency`` and, optionally, a
call-site prefix::

    idempotency:{raw_key}
    idempotency:{prefix}:{raw_key}
    idempotency:{prefix}:{raw_key}:lock

Derivation is a pure function of ``(prefix, raw_key)``; deduplication
depends on it.
"""

KEY_NAMESPACE = "idempotency"
LOCK_SUFFIX = ":lock"


def derive_key(prefix: str | None, raw_key: str) -> str:
    """Build the storage key for a raw idempotency key.

    Args:
        prefix: Call-site namespace. ``None`` or blank collapses to the
            two-segment form.
        raw_key: The client-supplied idempotency key.

    Returns:
        The namespaced storage key.

    Examples:
        >>> derive_key("", "abc")
        'idempotency:abc'
        >>> derive_key("orders", "abc")
        'idempotency:orders:abc'
    """
    if prefix is None or not prefix.strip():
        return f"{KEY_NAMESPACE}:{raw_key}"
    return f"{KEY_NAMESPACE}:{prefix}:{raw_key}"


def lock_key(storage_key: str) -> str:
    """Return the key of the execution lock guarding ``storage_key``.

    Examples:
        >>> lock_key("idempotency:orders:abc")
        'idempotency:orders:abc:lock'
    """
    return storage_key + LOCK_SUFFIX
