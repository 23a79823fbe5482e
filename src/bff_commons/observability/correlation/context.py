"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import dataclasses
from contextvars import ContextVar, Token
from typing import Mapping
from uuid import uuid4

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"
TENANT_ID_HEADER = "X-Tenant-ID"


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for a single request or background job run."""
    correlation_id: str
    tenant_id: str | None = None
    user_id: str | None = None
    trace_id: str | None = None

    @classmethod
    def new(cls, tenant_id: str | None = None, user_id: str | None = None) -> "RequestContext":
        return cls(correlation_id=str(uuid4()), tenant_id=tenant_id, user_id=user_id)


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_bff_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``."""

    @staticmethod
    def set(ctx: RequestContext) -> Token[RequestContext | None]:
        return _CTX_VAR.set(ctx)

    @staticmethod
    def reset(token: Token[RequestContext | None]) -> None:
        _CTX_VAR.reset(token)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def correlation_id() -> str | None:
        ctx = _CTX_VAR.get()
        return ctx.correlation_id if ctx is not None else None

    @staticmethod
    def get_or_new() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            ctx = RequestContext.new()
            _CTX_VAR.set(ctx)
        return ctx

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    def from_headers(headers: Mapping[str, str]) -> RequestContext:
        """Build a context from HTTP headers (names matched case-insensitively).

        Correlation ID priority: ``X-Correlation-ID`` → ``X-Request-ID`` →
        generated UUID. The W3C ``traceparent`` header fills ``trace_id``.
        """
        norm: dict[str, str] = {k.lower(): v for k, v in headers.items()}

        correlation_id = (
            norm.get(CORRELATION_ID_HEADER.lower())
            or norm.get(REQUEST_ID_HEADER.lower())
            or str(uuid4())
        )

        # 00-{trace-id}-{parent-id}-{flags}
        trace_id: str | None = None
        traceparent = norm.get("traceparent")
        if traceparent:
            parts = traceparent.split("-")
            if len(parts) >= 2 and parts[1]:
                trace_id = parts[1]

        return RequestContext(
            correlation_id=correlation_id,
            tenant_id=norm.get(TENANT_ID_HEADER.lower()) or None,
            trace_id=trace_id,
        )


__all__ = [
    "CORRELATION_ID_HEADER",
    "CorrelationContext",
    "REQUEST_ID_HEADER",
    "RequestContext",
    "TENANT_ID_HEADER",
]
