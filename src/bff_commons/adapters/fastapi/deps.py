"""FastAPI adapter – reusable dependency functions and OpenAPI helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from bff_commons.kernel.errors import MissingIdempotencyKeyError

IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"
MAX_IDEMPOTENCY_KEY_LENGTH = 255


async def require_idempotency_key(
    idempotency_key: Annotated[str | None, Header(alias=IDEMPOTENCY_KEY_HEADER)] = None,
) -> str:
    """Return the ``Idempotency-Key`` header or fail with 400.

    Usage::

        @router.post("/approvals/{approval_id}/decision")
        async def decide(approval_id: str, body: Decision, key: IdempotencyKeyDep): ...
    """
    key = (idempotency_key or "").strip()
    if not key:
        raise MissingIdempotencyKeyError(IDEMPOTENCY_KEY_HEADER)
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise MissingIdempotencyKeyError(
            IDEMPOTENCY_KEY_HEADER,
            message=f"{IDEMPOTENCY_KEY_HEADER} must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
            issue="TOO_LONG",
        )
    return key


IdempotencyKeyDep = Annotated[str, Depends(require_idempotency_key)]


_ERROR_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "code": {"type": "string"},
        "message": {"type": "string"},
        "detail": {"type": "object"},
        "correlation_id": {"type": "string", "nullable": True},
    },
    "required": ["code", "message"],
}

_STATUS_EXAMPLES: dict[int, tuple[str, str]] = {
    400: ("missing_idempotency_key", "Idempotency-Key header is required"),
    404: ("not_found", "Resource not found"),
    409: ("idempotency_conflict", "Request with this Idempotency-Key is still being processed"),
    422: ("idempotency_mismatch", "Request body does not match previous request with this Idempotency-Key"),
    500: ("internal_error", "Internal server error"),
    502: ("upstream_service_error", "Upstream service failed"),
    503: ("infrastructure_error", "Service unavailable"),
}


def error_responses(*codes: int) -> dict[str, dict[str, object]]:
    """Build an ``openapi_extra["responses"]`` dict for the given HTTP codes.

    Usage::

        @router.post("/approvals", openapi_extra={"responses": error_responses(400, 409, 422)})
        async def create_approval(...): ...
    """
    result: dict[str, dict[str, object]] = {}
    for code in codes:
        error_code, description = _STATUS_EXAMPLES.get(code, ("error", "Error"))
        result[str(code)] = {
            "description": description,
            "content": {
                "application/json": {
                    "schema": _ERROR_SCHEMA,
                    "example": {
                        "code": error_code,
                        "message": description,
                        "detail": {},
                        "correlation_id": "00000000-0000-0000-0000-000000000000",
                    },
                }
            },
        }
    return result


__all__ = [
    "IDEMPOTENCY_KEY_HEADER",
    "IdempotencyKeyDep",
    "error_responses",
    "require_idempotency_key",
]
