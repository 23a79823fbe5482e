"""FastAPI adapter – ASGI correlation-id middleware."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from bff_commons.observability.correlation import CORRELATION_ID_HEADER, CorrelationContext

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send


class FastAPICorrelationIdMiddleware:
    """Populate :class:`CorrelationContext` for each request and echo the id back.

    Correlation id resolution order: ``X-Correlation-ID``, ``X-Request-ID``,
    generated UUID v4. ``X-Tenant-ID`` and ``traceparent`` are picked up too.
    The id is bound into structlog contextvars so every log line of the
    request carries it, and outbox records enqueued during the request
    inherit it.
    """

    def __init__(self, app: "ASGIApp", header_name: str = CORRELATION_ID_HEADER) -> None:
        self.app = app
        self._response_header = header_name.lower().encode()

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        headers = {k.decode("latin-1"): v.decode("latin-1").strip() for k, v in scope.get("headers", [])}
        ctx = CorrelationContext.from_headers(headers)
        token = CorrelationContext.set(ctx)
        bound = {"correlation_id": ctx.correlation_id}
        if ctx.tenant_id is not None:
            bound["tenant_id"] = ctx.tenant_id
        structlog.contextvars.bind_contextvars(**bound)

        response_header = self._response_header
        encoded_id = ctx.correlation_id.encode()

        async def send_with_header(message: Any) -> None:
            if message["type"] == "http.response.start":
                headers_list: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers_list.append((response_header, encoded_id))
                message = {**message, "headers": headers_list}
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            structlog.contextvars.unbind_contextvars(*bound)
            CorrelationContext.reset(token)


__all__ = ["FastAPICorrelationIdMiddleware"]
