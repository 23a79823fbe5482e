"""Application outbox – enqueue with the business transaction, deliver in the background."""
from bff_commons.application.outbox.dispatcher import (
    DISPATCH_JOB_ID,
    IDEMPOTENCY_CLEANUP_JOB_ID,
    PURGE_JOB_ID,
    RECLAIM_JOB_ID,
    OutboxDispatcher,
)
from bff_commons.application.outbox.publisher import OutboxPublisher

__all__ = [
    "DISPATCH_JOB_ID",
    "IDEMPOTENCY_CLEANUP_JOB_ID",
    "OutboxDispatcher",
    "OutboxPublisher",
    "PURGE_JOB_ID",
    "RECLAIM_JOB_ID",
]
