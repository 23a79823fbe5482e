"""SQLAlchemy adapter – SqlAlchemyOutboxRepository."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bff_commons.adapters.sqlalchemy.models import OutboxEventModel
from bff_commons.kernel.errors import NotFoundError, OutboxStateError
from bff_commons.kernel.messaging import (
    DEFAULT_RETENTION_DAYS,
    OutboxRecord,
    OutboxRepository,
    OutboxStatus,
    retry_backoff,
)
from bff_commons.kernel.time import Clock, SystemClock, ensure_utc

logger = logging.getLogger(__name__)

_table = OutboxEventModel.__table__


class SqlAlchemyOutboxRepository(OutboxRepository):
    """SQLAlchemy-backed outbox repository.

    Every method except ``enqueue`` runs in its own short transaction opened
    from *session_factory*. ``claim_pending`` is a single
    ``UPDATE … WHERE id IN (SELECT … FOR UPDATE SKIP LOCKED) RETURNING``
    statement, so concurrent dispatchers never claim the same row
    (on PostgreSQL; SQLite serialises writers instead).
    """

    def __init__(self, session_factory: Callable[[], AsyncSession], clock: Clock | None = None) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    async def enqueue(self, record: OutboxRecord, session: AsyncSession | None = None) -> None:
        stmt = insert(_table).values(**self._record_to_row(record))
        if session is not None:
            await session.execute(stmt)
            return
        async with self._session_factory() as own, own.begin():
            await own.execute(stmt)

    async def claim_pending(self, limit: int = 10) -> list[OutboxRecord]:
        now = self._clock.now()
        due = (
            select(_table.c.id)
            .where(_table.c.status == OutboxStatus.PENDING.value, _table.c.scheduled_at <= now)
            .order_by(_table.c.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(_table)
            .where(_table.c.id.in_(due))
            .values(status=OutboxStatus.PROCESSING.value, updated_at=now)
            .returning(*_table.c)
        )
        async with self._session_factory() as session, session.begin():
            rows = (await session.execute(stmt)).all()
        records = [self._row_to_record(row) for row in rows]
        records.sort(key=lambda r: r.created_at)
        return records

    async def mark_published(self, record_id: str) -> None:
        now = self._clock.now()
        await self._update(
            record_id,
            status=OutboxStatus.PUBLISHED.value,
            processed_at=now,
            updated_at=now,
        )

    async def mark_for_retry(self, record_id: str, error: str) -> OutboxStatus | None:
        now = self._clock.now()
        async with self._session_factory() as session, session.begin():
            row = (
                await session.execute(
                    select(_table.c.retry_count, _table.c.max_retries, _table.c.event_type)
                    .where(_table.c.id == record_id)
                    .with_for_update()
                )
            ).first()
            if row is None:
                logger.warning("outbox.retry_unknown_record id=%s", record_id)
                return None

            retry_count = row.retry_count + 1
            if retry_count >= row.max_retries:
                status = OutboxStatus.DEAD
                values: dict[str, Any] = {"status": status.value}
            else:
                status = OutboxStatus.PENDING
                values = {"status": status.value, "scheduled_at": now + retry_backoff(retry_count)}

            await session.execute(
                update(_table)
                .where(_table.c.id == record_id)
                .values(retry_count=retry_count, last_error=error, updated_at=now, **values)
            )

        if status is OutboxStatus.DEAD:
            logger.error(
                "outbox.moved_to_dead_letter id=%s event_type=%s retry_count=%d error=%s",
                record_id,
                row.event_type,
                retry_count,
                error,
            )
        else:
            logger.info("outbox.scheduled_retry id=%s retry_count=%d", record_id, retry_count)
        return status

    async def mark_dead(self, record_id: str, error: str) -> None:
        await self._update(
            record_id,
            status=OutboxStatus.DEAD.value,
            last_error=error,
            updated_at=self._clock.now(),
        )
        logger.error("outbox.marked_dead id=%s error=%s", record_id, error)

    async def reprocess(self, record_id: str) -> None:
        now = self._clock.now()
        async with self._session_factory() as session, session.begin():
            status = (
                await session.execute(
                    select(_table.c.status).where(_table.c.id == record_id).with_for_update()
                )
            ).scalar_one_or_none()
            if status is None:
                raise NotFoundError("OutboxRecord", record_id)
            if status != OutboxStatus.DEAD.value:
                raise OutboxStateError(record_id, status, OutboxStatus.DEAD.value)
            await session.execute(
                update(_table)
                .where(_table.c.id == record_id)
                .values(
                    status=OutboxStatus.PENDING.value,
                    retry_count=0,
                    last_error=None,
                    scheduled_at=now,
                    updated_at=now,
                )
            )
        logger.info("outbox.reprocess id=%s", record_id)

    async def get(self, record_id: str) -> OutboxRecord | None:
        async with self._session_factory() as session:
            row = (await session.execute(select(_table).where(_table.c.id == record_id))).first()
        return self._row_to_record(row) if row is not None else None

    async def list_dead_letters(self, limit: int = 100) -> list[OutboxRecord]:
        stmt = (
            select(_table)
            .where(_table.c.status == OutboxStatus.DEAD.value)
            .order_by(_table.c.created_at)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [self._row_to_record(row) for row in rows]

    async def reclaim_stale(self, older_than: timedelta) -> int:
        now = self._clock.now()
        stmt = (
            update(_table)
            .where(
                _table.c.status == OutboxStatus.PROCESSING.value,
                _table.c.updated_at <= now - older_than,
            )
            .values(status=OutboxStatus.PENDING.value, scheduled_at=now, updated_at=now)
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            count = result.rowcount or 0
        return count

    async def purge_published_older_than(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
        cutoff = self._clock.now() - timedelta(days=retention_days)
        stmt = delete(_table).where(
            _table.c.status == OutboxStatus.PUBLISHED.value,
            _table.c.created_at < cutoff,
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            count = result.rowcount or 0
        return count

    async def _update(self, record_id: str, **values: Any) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(update(_table).where(_table.c.id == record_id).values(**values))

    @staticmethod
    def _record_to_row(record: OutboxRecord) -> dict[str, Any]:
        return {
            "id": record.id,
            "tenant_id": record.tenant_id,
            "event_type": record.event_type,
            "aggregate_type": record.aggregate_type,
            "aggregate_id": record.aggregate_id,
            "correlation_id": record.correlation_id,
            "payload": record.payload,
            "metadata": record.metadata,
            "status": record.status.value,
            "retry_count": record.retry_count,
            "max_retries": record.max_retries,
            "last_error": record.last_error,
            "scheduled_at": record.scheduled_at,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
            "processed_at": record.processed_at,
        }

    @staticmethod
    def _row_to_record(row: Any) -> OutboxRecord:
        m = row._mapping
        return OutboxRecord(
            id=m["id"],
            tenant_id=m["tenant_id"],
            event_type=m["event_type"],
            aggregate_type=m["aggregate_type"],
            aggregate_id=m["aggregate_id"],
            correlation_id=m["correlation_id"],
            payload=m["payload"] or {},
            metadata=m["metadata"],
            status=OutboxStatus(m["status"]),
            retry_count=m["retry_count"],
            max_retries=m["max_retries"],
            last_error=m["last_error"],
            scheduled_at=ensure_utc(m["scheduled_at"]),
            created_at=ensure_utc(m["created_at"]),
            updated_at=ensure_utc(m["updated_at"]),
            processed_at=ensure_utc(m["processed_at"]) if m["processed_at"] is not None else None,
        )


__all__ = ["SqlAlchemyOutboxRepository"]
