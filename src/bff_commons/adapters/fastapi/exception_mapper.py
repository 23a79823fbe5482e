"""FastAPI adapter – FastAPIExceptionMapper."""
from __future__ import annotations

import logging
from typing import Any

from fastapi.responses import JSONResponse

from bff_commons.kernel.errors import BaseError
from bff_commons.observability.correlation import CorrelationContext

logger = logging.getLogger(__name__)


class FastAPIExceptionMapper:
    """Register a handler turning any :class:`BaseError` into a JSON response.

    The HTTP status comes from the error class's ``status_code``:

    ``MissingIdempotencyKeyError``  → 400
    ``NotFoundError``               → 404
    ``IdempotencyConflictError``    → 409
    ``IdempotencyMismatchError``    → 422
    ``UpstreamServiceError``        → 502
    ``InfrastructureError``         → 503

    Error body schema::

        {"code": "idempotency_conflict", "message": "...", "detail": {...}, "correlation_id": "..."}
    """

    @staticmethod
    def status_for(exc: BaseError) -> int:
        return exc.status_code

    @staticmethod
    def body_for(exc: BaseError) -> dict[str, Any]:
        return {
            "code": exc.code,
            "message": exc.message,
            "detail": exc.detail,
            "correlation_id": CorrelationContext.correlation_id(),
        }

    async def handle(self, request: Any, exc: BaseError) -> JSONResponse:  # noqa: ARG002
        status = self.status_for(exc)
        if status >= 500:
            logger.error("http.error code=%s status=%d exc=%r", exc.code, status, exc)
        else:
            logger.info("http.rejected code=%s status=%d", exc.code, status)
        return JSONResponse(status_code=status, content=self.body_for(exc))

    def register(self, app: Any) -> None:
        """Register the handler on a ``FastAPI`` or ``Starlette`` app."""
        app.add_exception_handler(BaseError, self.handle)


__all__ = ["FastAPIExceptionMapper"]
