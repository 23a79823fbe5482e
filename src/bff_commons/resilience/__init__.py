"""Resilience – retry."""

from bff_commons.resilience.retry import RetryExecutor, RetryPolicy, RetryPresets

__all__ = ["RetryExecutor", "RetryPolicy", "RetryPresets"]
