"""FastAPI adapter – Idempotency-Key dependency, correlation middleware, exception mapper."""
from bff_commons.adapters.fastapi.deps import (
    IDEMPOTENCY_KEY_HEADER,
    IdempotencyKeyDep,
    error_responses,
    require_idempotency_key,
)
from bff_commons.adapters.fastapi.exception_mapper import FastAPIExceptionMapper
from bff_commons.adapters.fastapi.middleware import FastAPICorrelationIdMiddleware

__all__ = [
    "FastAPICorrelationIdMiddleware",
    "FastAPIExceptionMapper",
    "IDEMPOTENCY_KEY_HEADER",
    "IdempotencyKeyDep",
    "error_responses",
    "require_idempotency_key",
]
