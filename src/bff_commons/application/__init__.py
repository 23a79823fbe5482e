"""Application – event bus, idempotency, outbox and background jobs (framework-agnostic)."""

from bff_commons.application.eventing import EventHandler, InProcessEventBus, PublishOutcome
from bff_commons.application.idempotency import GuardResult, IdempotencyService
from bff_commons.application.outbox import OutboxDispatcher, OutboxPublisher
from bff_commons.application.scheduler import APSchedulerAdapter, InMemoryScheduler, Job

__all__ = [
    "APSchedulerAdapter",
    "EventHandler",
    "GuardResult",
    "IdempotencyService",
    "InMemoryScheduler",
    "InProcessEventBus",
    "Job",
    "OutboxDispatcher",
    "OutboxPublisher",
    "PublishOutcome",
]
