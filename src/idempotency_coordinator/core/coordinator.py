"""Idempotency coordinator: the decision algorithm.

This module sequences cache lookup, locking, delegation to the protected
operation and write-back for one idempotency key:

    no key  -> KeyMissingError (mandatory) or pass-through
    lookup  -> hit: replay (or BodyMismatchError)
            -> store down: run unprotected (degrade)
    miss    -> try_lock: taken -> ConflictError
            -> acquired: look up again (hit: replay), else run operation,
                         cache success; release lock on every path

The coordinator holds no in-process lock. All coordination between
concurrent callers, including callers in other processes, goes through the
store's atomic ``try_lock``.

Examples:
    Protecting an operation::

        from idempotency_coordinator import IdempotencyCoordinator, IdempotencyOptions
        from idempotency_coordinator.storage.memory import MemoryResultStore

        coordinator = IdempotencyCoordinator(MemoryResultStore())
        options = IdempotencyOptions(key_prefix="orders", include_body=True)

        async def create_order():
            order = await orders.create(payload)
            return 201, order.model_dump_json()

        outcome = await coordinator.execute(
            request.headers.get("Idempotency-Key"),
            create_order,
            options=options,
            payload=payload,
        )
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from idempotency_coordinator.config import CoordinatorConfig
from idempotency_coordinator.core.lock import StoreLock
from idempotency_coordinator.exceptions import (
    BodyMismatchError,
    ConflictError,
    KeyMissingError,
    StoreUnavailableError,
)
from idempotency_coordinator.fingerprint import compute_fingerprint
from idempotency_coordinator.keys import derive_key
from idempotency_coordinator.models import CachedOutcome, IdempotencyOptions, Outcome
from idempotency_coordinator.observability.logging import get_logger
from idempotency_coordinator.observability.metrics import (
    record_decision,
    record_execution_time,
    record_store_error,
)
from idempotency_coordinator.storage.base import ResultStore
from idempotency_coordinator.storage.factory import create_store

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Outcome | tuple[int, Any]]]
FingerprintFunc = Callable[[Any], str | None]


class IdempotencyCoordinator:
    """Runs operations at most once per idempotency key.

    Attributes:
        store: Result store shared by every instance of the service.
        default_options: Options used when ``execute`` gets none.
        fail_closed: If True, store outages raise StoreUnavailableError
            instead of running the operation without protection.
    """

    def __init__(
        self,
        store: ResultStore,
        default_options: IdempotencyOptions | None = None,
        fail_closed: bool = False,
    ) -> None:
        self.store = store
        self.default_options = default_options or IdempotencyOptions()
        self.fail_closed = fail_closed

    @classmethod
    def from_config(cls, config: CoordinatorConfig) -> "IdempotencyCoordinator":
        """Build a coordinator and its store from process configuration."""
        return cls(
            store=create_store(config),
            default_options=config.default_options(),
            fail_closed=config.fail_closed,
        )

    async def execute(
        self,
        raw_key: str | None,
        operation: Operation,
        options: IdempotencyOptions | None = None,
        payload: Any = None,
        fingerprint_of: FingerprintFunc | None = None,
    ) -> Outcome:
        """Run ``operation`` at most once for ``raw_key``.

        Args:
            raw_key: Client-supplied idempotency key; None or blank if absent.
            operation: Zero-argument coroutine function returning an Outcome
                or a ``(status_code, body)`` pair.
            options: Call-site options. Defaults to ``default_options``.
            payload: Materialized request payload, fingerprinted when
                ``options.include_body`` is set. None means no payload.
            fingerprint_of: Payload hashing function. Defaults to
                ``compute_fingerprint``.

        Returns:
            The operation's outcome, or the cached outcome of an earlier
            successful execution with the same key.

        Raises:
            KeyMissingError: If the key is absent and options.mandatory is set.
            BodyMismatchError: If the key was used before with another payload.
            ConflictError: If an execution for the key is in flight.
            StoreUnavailableError: Only when the coordinator fails closed.
            Exception: Whatever ``operation`` raises, after lock release.
        """
        options = options or self.default_options

        if raw_key is None or not raw_key.strip():
            if options.mandatory:
                record_decision("key_missing")
                raise KeyMissingError(options.header_name)
            record_decision("passthrough")
            return Outcome.coerce(await operation())

        key = derive_key(options.key_prefix, raw_key)
        request_fingerprint: str | None = None
        if options.include_body and payload is not None:
            request_fingerprint = (fingerprint_of or compute_fingerprint)(payload)

        try:
            cached = await self.store.get(key)
        except StoreUnavailableError as e:
            return await self._degrade(key, "get", e, operation)

        if cached is not None:
            return self._replay(raw_key, key, cached, options, request_fingerprint)

        lock = StoreLock(self.store, key, raw_key, options.effective_lock_ttl_seconds)
        try:
            await lock.acquire()
        except StoreUnavailableError as e:
            return await self._degrade(key, "try_lock", e, operation)
        except ConflictError:
            record_decision("conflict")
            logger.info("idempotency.conflict", key=key)
            raise

        try:
            # an execution may have finished between the lookup and try_lock
            try:
                cached = await self.store.get(key)
            except StoreUnavailableError as e:
                return await self._degrade(key, "get", e, operation)
            if cached is not None:
                return self._replay(raw_key, key, cached, options, request_fingerprint)

            outcome = await self._run_locked(key, operation)
            if options.success_predicate(outcome.status_code):
                await self._write_back(
                    key,
                    CachedOutcome(
                        status_code=outcome.status_code,
                        body=outcome.body,
                        body_fingerprint=request_fingerprint if options.include_body else None,
                    ),
                    options.ttl_seconds,
                )
            else:
                logger.info(
                    "idempotency.not_cached",
                    key=key,
                    status_code=outcome.status_code,
                )
            return outcome
        finally:
            await lock.release()

    def _replay(
        self,
        raw_key: str,
        key: str,
        cached: CachedOutcome,
        options: IdempotencyOptions,
        request_fingerprint: str | None,
    ) -> Outcome:
        if (
            options.include_body
            and cached.body_fingerprint is not None
            and request_fingerprint is not None
            and cached.body_fingerprint != request_fingerprint
        ):
            record_decision("body_mismatch")
            logger.info("idempotency.body_mismatch", key=key)
            raise BodyMismatchError(
                key=raw_key,
                stored_fingerprint=cached.body_fingerprint,
                request_fingerprint=request_fingerprint,
            )

        record_decision("replayed")
        logger.info("idempotency.replayed", key=key, status_code=cached.status_code)
        return cached.to_outcome()

    async def _run_locked(self, key: str, operation: Operation) -> Outcome:
        start_time = time.perf_counter()
        try:
            outcome = Outcome.coerce(await operation())
        except Exception as e:
            record_decision("failed")
            logger.info(
                "idempotency.operation_failed",
                key=key,
                error_type=type(e).__name__,
            )
            raise
        finally:
            record_execution_time(time.perf_counter() - start_time)

        record_decision("executed")
        logger.info("idempotency.executed", key=key, status_code=outcome.status_code)
        return outcome

    async def _write_back(self, key: str, cached: CachedOutcome, ttl_seconds: int) -> None:
        try:
            await self.store.put(key, cached, ttl_seconds)
        except StoreUnavailableError as e:
            record_store_error("put")
            logger.warning("idempotency.cache_write_failed", key=key, error=e.message)

    async def _degrade(
        self,
        key: str,
        store_operation: str,
        error: StoreUnavailableError,
        operation: Operation,
    ) -> Outcome:
        record_store_error(store_operation)
        logger.warning(
            "idempotency.store_unavailable",
            key=key,
            store_operation=store_operation,
            error=error.message,
            fail_closed=self.fail_closed,
        )
        if self.fail_closed:
            raise error

        record_decision("degraded")
        return Outcome.coerce(await operation())
