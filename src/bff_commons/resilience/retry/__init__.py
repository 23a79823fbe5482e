"""Resilience – bounded retry with exponential backoff."""
from bff_commons.resilience.retry.classifier import TRANSIENT_MESSAGE_PATTERNS, extract_status_code, is_retryable
from bff_commons.resilience.retry.executor import RetryExecutor
from bff_commons.resilience.retry.policy import (
    DEFAULT_RETRY_POLICY,
    DEFAULT_RETRYABLE_STATUS_CODES,
    RetryPolicy,
    RetryPresets,
)

__all__ = [
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "DEFAULT_RETRY_POLICY",
    "RetryExecutor",
    "RetryPolicy",
    "RetryPresets",
    "TRANSIENT_MESSAGE_PATTERNS",
    "extract_status_code",
    "is_retryable",
]
