"""Application-layer errors — cross-cutting concerns at use-case level."""

from __future__ import annotations

from bff_commons.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"
    status_code = 400


class MissingIdempotencyKeyError(ApplicationError):
    """The Idempotency-Key header is missing on a mutating request."""

    default_code = "missing_idempotency_key"

    def __init__(
        self,
        header_name: str = "Idempotency-Key",
        *,
        message: str | None = None,
        issue: str = "REQUIRED",
    ) -> None:
        super().__init__(
            message or f"{header_name} header is required for this operation",
            detail={"field": header_name, "issue": issue},
        )
        self.header_name = header_name


__all__ = ["ApplicationError", "MissingIdempotencyKeyError"]
