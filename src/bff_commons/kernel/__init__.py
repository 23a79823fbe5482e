"""Kernel – framework-agnostic building blocks."""

from bff_commons.kernel.errors import (
    ApplicationError,
    BaseError,
    ConflictError,
    DomainError,
    IdempotencyConflictError,
    IdempotencyMismatchError,
    InfrastructureError,
    NotFoundError,
    UpstreamServiceError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "DomainError",
    "IdempotencyConflictError",
    "IdempotencyMismatchError",
    "InfrastructureError",
    "NotFoundError",
    "UpstreamServiceError",
]
