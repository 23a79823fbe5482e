"""Domain errors — rule violations the caller can act upon."""

from __future__ import annotations

from typing import Any

from bff_commons.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"
    status_code = 422


class NotFoundError(DomainError):
    """The requested resource does not exist."""

    default_code = "not_found"
    status_code = 404

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        **kwargs: Any,
    ) -> None:
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} '{identifier}' not found"
        super().__init__(msg, **kwargs)
        self.resource = resource
        self.identifier = identifier


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"
    status_code = 409


class IdempotencyConflictError(ConflictError):
    """A request with the same Idempotency-Key is still IN_PROGRESS.

    The client should poll or resubmit later with the same key; it must not
    start a new logical attempt.
    """

    default_code = "idempotency_conflict"

    def __init__(self, idempotency_key: str, *, record_id: str | None = None, **kwargs: Any) -> None:
        super().__init__(
            f'Request with Idempotency-Key "{idempotency_key}" is still being processed',
            detail={
                "field": "Idempotency-Key",
                "issue": "IN_PROGRESS",
                "idempotency_key": idempotency_key,
                "record_id": record_id,
            },
            **kwargs,
        )
        self.idempotency_key = idempotency_key
        self.record_id = record_id


class IdempotencyMismatchError(DomainError):
    """The Idempotency-Key was already used with a different request body."""

    default_code = "idempotency_mismatch"
    status_code = 422

    def __init__(self, idempotency_key: str, *, record_id: str | None = None, **kwargs: Any) -> None:
        super().__init__(
            f'Request body does not match previous request with Idempotency-Key "{idempotency_key}"',
            detail={
                "field": "Idempotency-Key",
                "issue": "REQUEST_MISMATCH",
                "idempotency_key": idempotency_key,
                "record_id": record_id,
            },
            **kwargs,
        )
        self.idempotency_key = idempotency_key
        self.record_id = record_id


class OutboxStateError(ConflictError):
    """An outbox record is not in the state an operation requires."""

    default_code = "outbox_state_error"

    def __init__(self, record_id: str, status: str, expected: str) -> None:
        super().__init__(
            f"Outbox record '{record_id}' is {status}, expected {expected}",
            detail={"record_id": record_id, "status": status, "expected": expected},
        )
        self.record_id = record_id
        self.status = status


__all__ = [
    "ConflictError",
    "DomainError",
    "IdempotencyConflictError",
    "IdempotencyMismatchError",
    "NotFoundError",
    "OutboxStateError",
]
