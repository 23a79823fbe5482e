"""Observability – correlation context."""
from bff_commons.observability.correlation.context import (
    CORRELATION_ID_HEADER,
    REQUEST_ID_HEADER,
    TENANT_ID_HEADER,
    CorrelationContext,
    RequestContext,
)

__all__ = [
    "CORRELATION_ID_HEADER",
    "CorrelationContext",
    "REQUEST_ID_HEADER",
    "RequestContext",
    "TENANT_ID_HEADER",
]
