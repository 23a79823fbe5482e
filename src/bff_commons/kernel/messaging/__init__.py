"""Kernel messaging – outbox and idempotency (ports only)."""
from bff_commons.kernel.messaging.idempotency import (
    DEFAULT_TTL,
    IdempotencyKey,
    IdempotencyRecord,
    IdempotencyStatus,
    IdempotencyStore,
)
from bff_commons.kernel.messaging.outbox import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETENTION_DAYS,
    OutboxRecord,
    OutboxRepository,
    OutboxStatus,
    retry_backoff,
)

__all__ = [
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETENTION_DAYS",
    "DEFAULT_TTL",
    "IdempotencyKey",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "IdempotencyStore",
    "OutboxRecord",
    "OutboxRepository",
    "OutboxStatus",
    "retry_backoff",
]
