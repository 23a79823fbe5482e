"""Application idempotency – guarded execution of mutating requests."""
from bff_commons.application.idempotency.hashing import canonical_json, hash_request, to_jsonable
from bff_commons.application.idempotency.service import (
    CheckResult,
    GuardResult,
    IdempotencyService,
    error_summary,
)

__all__ = [
    "CheckResult",
    "GuardResult",
    "IdempotencyService",
    "canonical_json",
    "error_summary",
    "hash_request",
    "to_jsonable",
]
