"""Infrastructure errors — I/O failures, downstream integrations, storage."""

from __future__ import annotations

from typing import Any

from bff_commons.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"
    status_code = 503


class UpstreamServiceError(InfrastructureError):
    """A downstream call (usually made by an event handler) failed after retries."""

    default_code = "upstream_service_error"
    status_code = 502

    def __init__(
        self,
        service: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Error communicating with {service}: {message or 'Unknown error'}",
            **kwargs,
        )
        self.service = service


class EventDeliveryError(UpstreamServiceError):
    """One or more handlers failed to process a published event."""

    default_code = "event_delivery_error"

    def __init__(self, event_type: str, failures: dict[str, str]) -> None:
        summary = "; ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(
            f"event bus ({event_type})",
            summary,
            detail={"event_type": event_type, "failures": failures},
        )
        self.event_type = event_type
        self.failures = failures


class OutboxDeadLetterError(InfrastructureError):
    """An outbox event exhausted its retries and was parked as DEAD."""

    default_code = "outbox_dead_letter"

    def __init__(self, record_id: str, event_type: str, retry_count: int, last_error: str | None) -> None:
        super().__init__(
            f"Outbox event {record_id} ({event_type}) moved to dead letter after {retry_count} retries",
            detail={
                "record_id": record_id,
                "event_type": event_type,
                "retry_count": retry_count,
                "last_error": last_error,
            },
        )
        self.record_id = record_id
        self.event_type = event_type
        self.retry_count = retry_count


class DuplicateIdempotencyKeyError(InfrastructureError):
    """The storage unique constraint on ``(scope, idem_key, tenant_id)`` fired."""

    default_code = "duplicate_idempotency_key"
    status_code = 409

    def __init__(self, scope: str, idem_key: str, tenant_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"Idempotency record already exists for {scope}:{idem_key} (tenant {tenant_id})",
            **kwargs,
        )
        self.scope = scope
        self.idem_key = idem_key
        self.tenant_id = tenant_id


__all__ = [
    "DuplicateIdempotencyKeyError",
    "EventDeliveryError",
    "InfrastructureError",
    "OutboxDeadLetterError",
    "UpstreamServiceError",
]
