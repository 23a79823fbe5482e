"""Observability – JsonLoggerFactory."""
from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog

from bff_commons.observability.logging.filters import SensitiveFieldsFilter
from bff_commons.observability.logging.processors import CorrelationProcessor


class JsonLoggerFactory:
    """Configure structlog and route stdlib ``logging`` through it as JSON.

    Library modules log with ``logging.getLogger(__name__)``; after
    ``configure()`` each record is rendered as one JSON object carrying the
    ISO timestamp, level, logger name, bound contextvars and the active
    correlation id.
    """

    @staticmethod
    def configure(
        level: int = logging.INFO,
        sensitive_fields: frozenset[str] | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        shared_processors: list[Any] = [
            SensitiveFieldsFilter(sensitive_fields),
            structlog.contextvars.merge_contextvars,
            CorrelationProcessor(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
        ]

        structlog.configure(
            processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(formatter)
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)


__all__ = ["JsonLoggerFactory"]
