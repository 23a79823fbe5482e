"""Application idempotency – IdempotencyService.

State machine per ``(scope, idem_key, tenant_id)``::

    (none) ──create──▶ IN_PROGRESS ──ok──▶ COMPLETED   (replayed from cache)
                            │
                            └──error──▶ FAILED ──next request──▶ deleted, retried
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from bff_commons.application.idempotency.hashing import hash_request, to_jsonable
from bff_commons.config.outbox import IdempotencySettings
from bff_commons.kernel.errors import (
    BaseError,
    DuplicateIdempotencyKeyError,
    IdempotencyConflictError,
    IdempotencyMismatchError,
)
from bff_commons.kernel.messaging import (
    DEFAULT_TTL,
    IdempotencyKey,
    IdempotencyRecord,
    IdempotencyStatus,
    IdempotencyStore,
)
from bff_commons.resilience.retry import extract_status_code

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CheckResult:
    is_new: bool
    record: IdempotencyRecord
    cached_response: Any = None
    cached_status: int | None = None


@dataclasses.dataclass(frozen=True)
class GuardResult:
    """``response`` is always the stored JSON form, so a first call and its replays look alike."""

    response: Any
    http_status: int
    is_new: bool


def error_summary(error: BaseException) -> dict[str, Any]:
    summary: dict[str, Any] = {"name": type(error).__name__, "message": str(error)}
    if isinstance(error, BaseError):
        summary["code"] = error.code
    return summary


class IdempotencyService:
    """First writer wins; duplicates get the cached result or a conflict."""

    def __init__(
        self,
        store: IdempotencyStore,
        settings: IdempotencySettings | None = None,
        *,
        ttl: timedelta | None = None,
    ) -> None:
        self._store = store
        if ttl is None:
            ttl = settings.ttl if settings is not None else DEFAULT_TTL
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def check_or_create(
        self,
        key: IdempotencyKey,
        request_body: Any,
        ttl: timedelta | None = None,
    ) -> CheckResult:
        """Resolve an existing record or claim the key with a new IN_PROGRESS one.

        Raises:
            IdempotencyMismatchError: the key was used with a different body.
            IdempotencyConflictError: a request with this key is still running,
                or a concurrent request inserted it first.
        """
        request_hash = hash_request(request_body)
        existing = await self._store.find(key)

        if existing is not None:
            if existing.request_hash != request_hash:
                logger.warning("idempotency.mismatch key=%s record_id=%s", key, existing.id)
                raise IdempotencyMismatchError(key.idem_key, record_id=existing.id)

            if existing.status is IdempotencyStatus.IN_PROGRESS:
                logger.debug("idempotency.in_progress key=%s record_id=%s", key, existing.id)
                raise IdempotencyConflictError(key.idem_key, record_id=existing.id)

            if existing.status is IdempotencyStatus.COMPLETED:
                logger.debug("idempotency.replay key=%s record_id=%s", key, existing.id)
                return CheckResult(
                    is_new=False,
                    record=existing,
                    cached_response=existing.response_payload,
                    cached_status=existing.http_status,
                )

            logger.debug("idempotency.retry_after_failure key=%s record_id=%s", key, existing.id)
            await self._store.delete(existing.id)

        try:
            record = await self._store.create(key, request_hash, ttl or self._ttl)
        except DuplicateIdempotencyKeyError as exc:
            logger.info("idempotency.concurrent_insert key=%s", key)
            raise IdempotencyConflictError(key.idem_key, cause=exc) from exc

        logger.debug("idempotency.created key=%s record_id=%s", key, record.id)
        return CheckResult(is_new=True, record=record)

    async def complete(self, record_id: str, response: Any, http_status: int = 200) -> None:
        await self._store.mark_completed(record_id, http_status, to_jsonable(response))
        logger.debug("idempotency.completed record_id=%s status=%d", record_id, http_status)

    async def fail(self, record_id: str, error: BaseException, http_status: int = 500) -> None:
        await self._store.mark_failed(record_id, http_status, error_summary(error))
        logger.debug("idempotency.failed record_id=%s status=%d", record_id, http_status)

    async def guard(
        self,
        scope: str,
        key: str,
        tenant_id: str,
        request_body: Any,
        operation: Callable[[], Awaitable[T]],
        *,
        success_status: int = 200,
        ttl: timedelta | None = None,
    ) -> GuardResult:
        """Run *operation* at most once per ``(scope, key, tenant_id)`` and body.

        A replay returns the stored response and status without calling
        *operation*. A failing operation is recorded as FAILED (so the client
        may retry with the same key) and its exception is re-raised. Cancellation
        is recorded the same way before the ``CancelledError`` propagates.
        """
        idem_key = IdempotencyKey(scope=scope, idem_key=key, tenant_id=tenant_id)
        check = await self.check_or_create(idem_key, request_body, ttl)

        if not check.is_new:
            return GuardResult(
                response=check.cached_response,
                http_status=check.cached_status or success_status,
                is_new=False,
            )

        try:
            response = await operation()
        except asyncio.CancelledError as exc:
            logger.info("idempotency.cancelled key=%s record_id=%s", idem_key, check.record.id)
            await asyncio.shield(self.fail(check.record.id, exc, 500))
            raise
        except Exception as exc:
            status = extract_status_code(exc) or 500
            await self.fail(check.record.id, exc, status)
            raise

        payload = to_jsonable(response)
        await self.complete(check.record.id, payload, success_status)
        return GuardResult(response=payload, http_status=success_status, is_new=True)

    async def purge_expired(self) -> int:
        deleted = await self._store.delete_expired()
        if deleted:
            logger.info("idempotency.purged count=%d", deleted)
        return deleted


__all__ = ["CheckResult", "GuardResult", "IdempotencyService", "error_summary"]
