"""Resilience – decide whether a failure is worth retrying."""
from __future__ import annotations

from typing import Any

from bff_commons.resilience.retry.policy import RetryPolicy

TRANSIENT_MESSAGE_PATTERNS: tuple[str, ...] = (
    "econnrefused",
    "etimedout",
    "econnreset",
    "connection refused",
    "connection reset",
    "socket hang up",
    "network",
    "timeout",
    "timed out",
    "dns",
)


def _as_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def extract_status_code(error: BaseException) -> int | None:
    """Pull an HTTP-like status out of the common exception shapes.

    Looks at ``status`` / ``status_code`` / ``statusCode`` on the error, then
    on ``error.response`` (httpx / requests style), then a ``get_status()``
    method.
    """
    for attr in ("status", "status_code", "statusCode"):
        status = _as_status(getattr(error, attr, None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status", "status_code", "statusCode"):
            status = _as_status(getattr(response, attr, None))
            if status is not None:
                return status

    get_status = getattr(error, "get_status", None)
    if callable(get_status):
        try:
            return _as_status(get_status())
        except Exception:  # noqa: BLE001
            return None
    return None


def is_retryable(error: BaseException, policy: RetryPolicy) -> bool:
    """Pure function of ``(error, policy)``."""
    status = extract_status_code(error)
    if status is not None and status in policy.retryable_status_codes:
        return True
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in TRANSIENT_MESSAGE_PATTERNS)


__all__ = ["TRANSIENT_MESSAGE_PATTERNS", "extract_status_code", "is_retryable"]
