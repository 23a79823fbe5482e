"""Resilience – RetryPolicy value object and presets."""
from __future__ import annotations

import dataclasses

DEFAULT_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff.

    Delays are in seconds: the first retry waits ``initial_delay``, each
    following one multiplies by ``backoff_multiplier`` and is capped at
    ``max_delay``.
    """

    max_attempts: int = 3
    initial_delay: float = 0.25
    max_delay: float = 4.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: frozenset[int] = DEFAULT_RETRYABLE_STATUS_CODES

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delay_for(self, failed_attempt: int) -> float:
        """Wait before the attempt that follows the *failed_attempt*-th failure."""
        delay = self.initial_delay * self.backoff_multiplier ** (failed_attempt - 1)
        return min(delay, self.max_delay)

    def delays(self) -> list[float]:
        return [self.delay_for(n) for n in range(1, self.max_attempts)]


DEFAULT_RETRY_POLICY = RetryPolicy()


class RetryPresets:
    FAST = RetryPolicy(max_attempts=3, initial_delay=0.1, max_delay=1.0)
    STANDARD = RetryPolicy(max_attempts=4, initial_delay=0.25, max_delay=4.0)
    AGGRESSIVE = RetryPolicy(max_attempts=5, initial_delay=0.5, max_delay=10.0)


__all__ = ["DEFAULT_RETRYABLE_STATUS_CODES", "DEFAULT_RETRY_POLICY", "RetryPolicy", "RetryPresets"]
