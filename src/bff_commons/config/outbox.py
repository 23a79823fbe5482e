"""Config – outbox worker and idempotency settings."""
from __future__ import annotations

import dataclasses
from datetime import timedelta

from bff_commons.config.settings.base import Settings


@dataclasses.dataclass
class OutboxSettings(Settings):
    """``OUTBOX_*`` environment variables.

    ``OUTBOX_WORKER_ENABLED=false`` keeps the dispatcher from ever claiming,
    which is how API-only replicas opt out of delivery.
    """

    _prefix = "OUTBOX"

    worker_enabled: bool = True
    batch_size: int = 10
    poll_interval_seconds: float = 5.0
    retention_days: int = 14
    purge_interval_seconds: float = 86400.0
    reclaim_interval_seconds: float = 60.0
    processing_timeout_seconds: float = 300.0
    max_retries: int = 5

    def _validate(self) -> None:
        self._require_positive(
            "batch_size",
            "poll_interval_seconds",
            "retention_days",
            "purge_interval_seconds",
            "reclaim_interval_seconds",
            "processing_timeout_seconds",
            "max_retries",
        )

    @property
    def processing_timeout(self) -> timedelta:
        return timedelta(seconds=self.processing_timeout_seconds)


@dataclasses.dataclass
class IdempotencySettings(Settings):
    """``IDEMPOTENCY_*`` environment variables."""

    _prefix = "IDEMPOTENCY"

    ttl_hours: float = 24.0
    cleanup_interval_seconds: float = 3600.0

    def _validate(self) -> None:
        self._require_positive("ttl_hours", "cleanup_interval_seconds")

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.ttl_hours)


__all__ = ["IdempotencySettings", "OutboxSettings"]
