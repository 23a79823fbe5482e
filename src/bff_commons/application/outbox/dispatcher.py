"""Application outbox – OutboxDispatcher (poll, publish, retry, purge)."""
from __future__ import annotations

import asyncio
import logging

from bff_commons.application.eventing import InProcessEventBus
from bff_commons.application.idempotency import IdempotencyService
from bff_commons.application.scheduler import Job
from bff_commons.config.outbox import IdempotencySettings, OutboxSettings
from bff_commons.kernel.errors import OutboxDeadLetterError
from bff_commons.kernel.messaging import OutboxRecord, OutboxRepository, OutboxStatus

logger = logging.getLogger(__name__)

DISPATCH_JOB_ID = "outbox.dispatch"
PURGE_JOB_ID = "outbox.purge"
RECLAIM_JOB_ID = "outbox.reclaim"
IDEMPOTENCY_CLEANUP_JOB_ID = "idempotency.cleanup"


class OutboxDispatcher:
    """Deliver claimed outbox records through the in-process event bus.

    ``process_batch`` is single-flight per instance: a tick that fires while
    the previous batch is still running is skipped. Several instances may
    poll the same store; the repository's atomic claim keeps them from
    taking the same record.
    """

    def __init__(
        self,
        repository: OutboxRepository,
        bus: InProcessEventBus,
        settings: OutboxSettings | None = None,
        *,
        idempotency: IdempotencyService | None = None,
        idempotency_settings: IdempotencySettings | None = None,
    ) -> None:
        self._repository = repository
        self._bus = bus
        self._settings = settings or OutboxSettings()
        self._idempotency = idempotency
        self._idempotency_settings = idempotency_settings or IdempotencySettings()
        self._processing = False
        self._shutting_down = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    async def process_batch(self) -> int:
        """Claim up to ``batch_size`` due records and deliver them.

        Returns the number of records published. Skipped (returns 0) when the
        worker is disabled, a batch is already running or shutdown began.
        """
        if not self._settings.worker_enabled or self._processing or self._shutting_down:
            return 0

        self._processing = True
        self._idle.clear()
        try:
            records = await self._repository.claim_pending(self._settings.batch_size)
            if not records:
                return 0
            logger.debug("outbox.batch_claimed count=%d", len(records))
            published = 0
            for record in records:
                try:
                    delivered = await self._deliver(record)
                except Exception:
                    # left PROCESSING; reclaim_stale hands it back after processing_timeout
                    logger.exception("outbox.bookkeeping_failed id=%s event_type=%s", record.id, record.event_type)
                    continue
                if delivered:
                    published += 1
            logger.info("outbox.batch_done claimed=%d published=%d", len(records), published)
            return published
        finally:
            self._processing = False
            self._idle.set()

    async def _deliver(self, record: OutboxRecord) -> bool:
        try:
            await self._bus.publish(record.to_event(), raise_on_failure=True)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.warning(
                "outbox.dispatch_failed id=%s event_type=%s retry_count=%d exc=%r",
                record.id,
                record.event_type,
                record.retry_count,
                exc,
            )
            status = await self._repository.mark_for_retry(record.id, error)
            if status is OutboxStatus.DEAD:
                dead = OutboxDeadLetterError(record.id, record.event_type, record.retry_count + 1, error)
                logger.error("outbox.dead_letter %s", dead.to_json())
            return False

        await self._repository.mark_published(record.id)
        logger.debug("outbox.published id=%s event_type=%s", record.id, record.event_type)
        return True

    async def purge_published(self) -> int:
        deleted = await self._repository.purge_published_older_than(self._settings.retention_days)
        logger.info("outbox.purged count=%d retention_days=%d", deleted, self._settings.retention_days)
        return deleted

    async def reclaim_stale(self) -> int:
        reclaimed = await self._repository.reclaim_stale(self._settings.processing_timeout)
        if reclaimed:
            logger.warning("outbox.reclaimed_stale count=%d", reclaimed)
        return reclaimed

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop claiming and wait for the in-flight batch to finish."""
        self._shutting_down = True
        logger.info("outbox.shutdown processing=%s", self._processing)
        await asyncio.wait_for(self._idle.wait(), timeout)

    def jobs(self) -> list[Job]:
        """Job definitions to hand to a :class:`~bff_commons.application.scheduler.Scheduler`."""
        enabled = self._settings.worker_enabled
        jobs = [
            Job(
                id=DISPATCH_JOB_ID,
                name="Dispatch pending outbox events",
                handler=self.process_batch,
                interval_seconds=self._settings.poll_interval_seconds,
                enabled=enabled,
            ),
            Job(
                id=RECLAIM_JOB_ID,
                name="Reclaim stale PROCESSING outbox events",
                handler=self.reclaim_stale,
                interval_seconds=self._settings.reclaim_interval_seconds,
                enabled=enabled,
            ),
            Job(
                id=PURGE_JOB_ID,
                name="Purge published outbox events",
                handler=self.purge_published,
                interval_seconds=self._settings.purge_interval_seconds,
                enabled=enabled,
            ),
        ]
        if self._idempotency is not None:
            jobs.append(
                Job(
                    id=IDEMPOTENCY_CLEANUP_JOB_ID,
                    name="Delete expired idempotency records",
                    handler=self._idempotency.purge_expired,
                    interval_seconds=self._idempotency_settings.cleanup_interval_seconds,
                )
            )
        return jobs


__all__ = [
    "DISPATCH_JOB_ID",
    "IDEMPOTENCY_CLEANUP_JOB_ID",
    "OutboxDispatcher",
    "PURGE_JOB_ID",
    "RECLAIM_JOB_ID",
]
