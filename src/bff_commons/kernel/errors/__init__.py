"""Kernel error hierarchy — public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError                      (domain.py)
    │   ├── NotFoundError
    │   ├── ConflictError
    │   │   ├── IdempotencyConflictError
    │   │   └── OutboxStateError
    │   └── IdempotencyMismatchError
    ├── ApplicationError                 (application.py)
    │   └── MissingIdempotencyKeyError
    └── InfrastructureError              (infrastructure.py)
        ├── UpstreamServiceError
        │   └── EventDeliveryError
        ├── OutboxDeadLetterError
        └── DuplicateIdempotencyKeyError
"""

from bff_commons.kernel.errors.application import ApplicationError, MissingIdempotencyKeyError
from bff_commons.kernel.errors.base import BaseError
from bff_commons.kernel.errors.domain import (
    ConflictError,
    DomainError,
    IdempotencyConflictError,
    IdempotencyMismatchError,
    NotFoundError,
    OutboxStateError,
)
from bff_commons.kernel.errors.infrastructure import (
    DuplicateIdempotencyKeyError,
    EventDeliveryError,
    InfrastructureError,
    OutboxDeadLetterError,
    UpstreamServiceError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConflictError",
    "DomainError",
    "DuplicateIdempotencyKeyError",
    "EventDeliveryError",
    "IdempotencyConflictError",
    "IdempotencyMismatchError",
    "InfrastructureError",
    "MissingIdempotencyKeyError",
    "NotFoundError",
    "OutboxDeadLetterError",
    "OutboxStateError",
    "UpstreamServiceError",
]
