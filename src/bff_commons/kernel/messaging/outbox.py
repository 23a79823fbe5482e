"""Kernel messaging – transactional outbox record and store port."""
from __future__ import annotations

import abc
import dataclasses
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import uuid4

from bff_commons.kernel.ddd.domain_event import DomainEvent

DEFAULT_MAX_RETRIES = 5
DEFAULT_RETENTION_DAYS = 14


class OutboxStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PUBLISHED = "PUBLISHED"
    DEAD = "DEAD"

    @property
    def is_terminal(self) -> bool:
        return self in (OutboxStatus.PUBLISHED, OutboxStatus.DEAD)


def retry_backoff(retry_count: int) -> timedelta:
    """Delay before the *retry_count*-th redelivery: ``2 ** retry_count`` minutes."""
    return timedelta(minutes=2**retry_count)


@dataclasses.dataclass
class OutboxRecord:
    """Transactional outbox record stored alongside business data."""

    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: dict[str, Any] = dataclasses.field(default_factory=dict)
    id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    tenant_id: str | None = None
    correlation_id: str | None = None
    metadata: dict[str, Any] | None = None
    status: OutboxStatus = OutboxStatus.PENDING
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    last_error: str | None = None
    scheduled_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None

    @classmethod
    def from_event(
        cls,
        event: DomainEvent,
        *,
        now: datetime | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        metadata: dict[str, Any] | None = None,
    ) -> "OutboxRecord":
        now = now or datetime.now(UTC)
        return cls(
            event_type=event.event_type,
            aggregate_type=event.aggregate_type,
            aggregate_id=event.aggregate_id,
            payload=event.to_payload(),
            tenant_id=event.tenant_id,
            correlation_id=event.correlation_id,
            metadata=metadata,
            max_retries=max_retries,
            scheduled_at=now,
            created_at=now,
            updated_at=now,
        )

    def to_event(self) -> DomainEvent:
        """Rebuild the domain event; ``occurred_at`` is the enqueue time."""
        return DomainEvent(
            event_type=self.event_type,
            aggregate_type=self.aggregate_type,
            aggregate_id=self.aggregate_id,
            payload=dict(self.payload),
            correlation_id=self.correlation_id,
            tenant_id=self.tenant_id,
            occurred_at=self.created_at,
            event_id=self.id,
        )


class OutboxRepository(abc.ABC):
    """Port: durable queue of not-yet-published domain events.

    ``claim_pending`` must be a single atomic claim-and-lock so that any
    number of dispatchers can poll the same store without double delivery.
    """

    @abc.abstractmethod
    async def enqueue(self, record: OutboxRecord, session: Any = None) -> None:
        """Insert *record*; when *session* is given, join the caller's transaction."""

    @abc.abstractmethod
    async def claim_pending(self, limit: int = 10) -> list[OutboxRecord]: ...

    @abc.abstractmethod
    async def mark_published(self, record_id: str) -> None: ...

    @abc.abstractmethod
    async def mark_for_retry(self, record_id: str, error: str) -> OutboxStatus | None:
        """Return the resulting status (PENDING or DEAD), ``None`` for unknown ids."""

    @abc.abstractmethod
    async def mark_dead(self, record_id: str, error: str) -> None: ...

    @abc.abstractmethod
    async def reprocess(self, record_id: str) -> None: ...

    @abc.abstractmethod
    async def get(self, record_id: str) -> OutboxRecord | None: ...

    @abc.abstractmethod
    async def list_dead_letters(self, limit: int = 100) -> list[OutboxRecord]: ...

    @abc.abstractmethod
    async def reclaim_stale(self, older_than: timedelta) -> int:
        """Return PROCESSING rows untouched for *older_than* to PENDING."""

    @abc.abstractmethod
    async def purge_published_older_than(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int: ...


__all__ = [
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETENTION_DAYS",
    "OutboxRecord",
    "OutboxRepository",
    "OutboxStatus",
    "retry_backoff",
]
