"""Observability – correlation and structured logging."""

from bff_commons.observability.correlation import CorrelationContext, RequestContext
from bff_commons.observability.logging import CorrelationProcessor, JsonLoggerFactory, SensitiveFieldsFilter, get_logger

__all__ = [
    "CorrelationContext",
    "CorrelationProcessor",
    "JsonLoggerFactory",
    "RequestContext",
    "SensitiveFieldsFilter",
    "get_logger",
]
