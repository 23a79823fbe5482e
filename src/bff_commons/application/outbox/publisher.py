"""Application outbox – OutboxPublisher."""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable

from bff_commons.application.eventing import InProcessEventBus
from bff_commons.kernel.ddd import DomainEvent
from bff_commons.kernel.messaging import DEFAULT_MAX_RETRIES, OutboxRecord, OutboxRepository
from bff_commons.kernel.time import Clock, SystemClock
from bff_commons.observability.correlation import CorrelationContext

logger = logging.getLogger(__name__)


class OutboxPublisher:
    """Write domain events to the outbox as part of a business transaction.

    Pass the caller's session so the record commits (or rolls back) with the
    business write::

        async with uow:
            approval.decide(...)
            await publisher.enqueue(event, session=uow.session)
            await uow.commit()
        await publisher.publish_now(event)   # optional, best effort
    """

    def __init__(
        self,
        repository: OutboxRepository,
        bus: InProcessEventBus | None = None,
        *,
        clock: Clock | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._repository = repository
        self._bus = bus
        self._clock = clock or SystemClock()
        self._max_retries = max_retries

    async def enqueue(
        self,
        event: DomainEvent,
        session: Any = None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> OutboxRecord:
        event = self._with_correlation(event)
        record = OutboxRecord.from_event(
            event,
            now=self._clock.now(),
            max_retries=self._max_retries,
            metadata=metadata,
        )
        await self._repository.enqueue(record, session)
        logger.debug(
            "outbox.enqueued id=%s event_type=%s aggregate=%s:%s",
            record.id,
            record.event_type,
            record.aggregate_type,
            record.aggregate_id,
        )
        return record

    async def enqueue_raw(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict[str, Any],
        *,
        tenant_id: str | None = None,
        correlation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        session: Any = None,
    ) -> OutboxRecord:
        event = DomainEvent(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            tenant_id=tenant_id,
            correlation_id=correlation_id,
            occurred_at=self._clock.now(),
        )
        return await self.enqueue(event, session, metadata=metadata)

    async def enqueue_all(self, events: Iterable[DomainEvent], session: Any = None) -> list[OutboxRecord]:
        """Enqueue sequentially; with a session all records share its transaction."""
        return [await self.enqueue(event, session) for event in events]

    async def publish_now(self, event: DomainEvent) -> bool:
        """Deliver *event* in-process right away, swallowing failures.

        Only call this after the enqueueing transaction committed. Delivery
        is still guaranteed by the dispatcher, so handlers may see the event
        twice.
        """
        if self._bus is None:
            return False
        try:
            outcome = await self._bus.publish(self._with_correlation(event))
        except Exception as exc:
            logger.warning("outbox.publish_now_failed event_type=%s exc=%r", event.event_type, exc)
            return False
        return outcome.succeeded

    @staticmethod
    def _with_correlation(event: DomainEvent) -> DomainEvent:
        if event.correlation_id is not None:
            return event
        ctx = CorrelationContext.get()
        if ctx is None:
            return event
        return dataclasses.replace(event, correlation_id=ctx.correlation_id)


__all__ = ["OutboxPublisher"]
