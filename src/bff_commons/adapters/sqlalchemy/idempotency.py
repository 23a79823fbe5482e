"""SQLAlchemy adapter – SqlAlchemyIdempotencyStore."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bff_commons.adapters.sqlalchemy.models import IdempotencyRecordModel
from bff_commons.kernel.errors import DuplicateIdempotencyKeyError
from bff_commons.kernel.messaging import (
    DEFAULT_TTL,
    IdempotencyKey,
    IdempotencyRecord,
    IdempotencyStatus,
    IdempotencyStore,
)
from bff_commons.kernel.time import Clock, SystemClock, ensure_utc

logger = logging.getLogger(__name__)

_table = IdempotencyRecordModel.__table__


def _matches(key: IdempotencyKey) -> Any:
    return and_(
        _table.c.scope == key.scope,
        _table.c.idem_key == key.idem_key,
        _table.c.tenant_id == key.tenant_id,
    )


class SqlAlchemyIdempotencyStore(IdempotencyStore):
    """SQLAlchemy-backed idempotency store.

    ``create`` commits immediately so the IN_PROGRESS marker is visible to
    concurrent requests before the guarded operation starts; the unique
    constraint on ``(scope, idem_key, tenant_id)`` decides the race.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession], clock: Clock | None = None) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    async def find(self, key: IdempotencyKey) -> IdempotencyRecord | None:
        stmt = select(_table).where(_matches(key), _table.c.expires_at > self._clock.now())
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
        return self._row_to_record(row) if row is not None else None

    async def create(self, key: IdempotencyKey, request_hash: str, ttl: timedelta = DEFAULT_TTL) -> IdempotencyRecord:
        now = self._clock.now()
        record = IdempotencyRecord(
            scope=key.scope,
            idem_key=key.idem_key,
            tenant_id=key.tenant_id,
            request_hash=request_hash,
            id=str(uuid4()),
            status=IdempotencyStatus.IN_PROGRESS,
            created_at=now,
            updated_at=now,
            expires_at=now + ttl,
        )
        try:
            async with self._session_factory() as session, session.begin():
                # an expired leftover for the same key would trip the unique constraint
                await session.execute(delete(_table).where(_matches(key), _table.c.expires_at <= now))
                await session.execute(insert(_table).values(**self._record_to_row(record)))
        except IntegrityError as exc:
            raise DuplicateIdempotencyKeyError(key.scope, key.idem_key, key.tenant_id, cause=exc) from exc
        return record

    async def mark_completed(self, record_id: str, http_status: int, response_payload: Any) -> None:
        await self._update(
            record_id,
            status=IdempotencyStatus.COMPLETED.value,
            http_status=http_status,
            response_payload=response_payload,
        )

    async def mark_failed(self, record_id: str, http_status: int, error_payload: dict[str, Any]) -> None:
        await self._update(
            record_id,
            status=IdempotencyStatus.FAILED.value,
            http_status=http_status,
            error_payload=error_payload,
        )

    async def delete(self, record_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(_table).where(_table.c.id == record_id))

    async def delete_expired(self) -> int:
        stmt = delete(_table).where(_table.c.expires_at <= self._clock.now())
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            count = result.rowcount or 0
        return count

    async def _update(self, record_id: str, **values: Any) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(_table).where(_table.c.id == record_id).values(updated_at=self._clock.now(), **values)
            )

    @staticmethod
    def _record_to_row(record: IdempotencyRecord) -> dict[str, Any]:
        return {
            "id": record.id,
            "scope": record.scope,
            "idem_key": record.idem_key,
            "tenant_id": record.tenant_id,
            "status": record.status.value,
            "request_hash": record.request_hash,
            "http_status": record.http_status,
            "response_payload": record.response_payload,
            "error_payload": record.error_payload,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
            "expires_at": record.expires_at,
        }

    @staticmethod
    def _row_to_record(row: Any) -> IdempotencyRecord:
        m = row._mapping
        return IdempotencyRecord(
            id=m["id"],
            scope=m["scope"],
            idem_key=m["idem_key"],
            tenant_id=m["tenant_id"],
            status=IdempotencyStatus(m["status"]),
            request_hash=m["request_hash"],
            http_status=m["http_status"],
            response_payload=m["response_payload"],
            error_payload=m["error_payload"],
            created_at=ensure_utc(m["created_at"]),
            updated_at=ensure_utc(m["updated_at"]),
            expires_at=ensure_utc(m["expires_at"]),
        )


__all__ = ["SqlAlchemyIdempotencyStore"]
