"""Resilience – RetryExecutor backed by ``tenacity``."""
from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from bff_commons.kernel.time import Sleeper, asyncio_sleep
from bff_commons.resilience.retry.classifier import is_retryable
from bff_commons.resilience.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy

T = TypeVar("T")
logger = logging.getLogger(__name__)


class RetryExecutor:
    """Run an async operation under a :class:`RetryPolicy`.

    The executor never sleeps on its own: every backoff goes through the
    injected *sleep* so tests can record delays instead of waiting.

    Example::

        executor = RetryExecutor()
        profile = await executor.execute(
            lambda: core_api.get_profile(user_id),
            RetryPresets.FAST,
            "core_api.get_profile",
        )
    """

    def __init__(self, sleep: Sleeper | None = None) -> None:
        self._sleep = sleep or asyncio_sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        operation_name: str = "unknown",
    ) -> T:
        """Return the operation's result or raise its last error unchanged."""
        policy = policy or DEFAULT_RETRY_POLICY

        def _wait(state: RetryCallState) -> float:
            return policy.delay_for(state.attempt_number)

        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "retry.scheduled operation=%s attempt=%d/%d delay=%.3fs error=%s",
                operation_name,
                state.attempt_number,
                policy.max_attempts,
                state.next_action.sleep if state.next_action else 0.0,
                exc,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=_wait,
            retry=retry_if_exception(lambda exc: is_retryable(exc, policy)),
            before_sleep=_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    return await operation()
        except Exception as exc:
            if is_retryable(exc, policy):
                logger.error(
                    "retry.exhausted operation=%s attempts=%d error=%s", operation_name, attempts, exc
                )
            else:
                logger.warning(
                    "retry.non_retryable operation=%s attempt=%d error=%s", operation_name, attempts, exc
                )
            raise
        raise RuntimeError("unreachable")  # pragma: no cover

    def wrap(self, policy: RetryPolicy | None = None, operation_name: str | None = None) -> Callable[..., Any]:
        """Decorator form of :meth:`execute`."""

        def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
            name = operation_name or func.__qualname__

            @functools.wraps(func)
            async def wrapper(*args: Any, **kwargs: Any) -> T:
                return await self.execute(lambda: func(*args, **kwargs), policy, name)

            return wrapper

        return decorator


__all__ = ["RetryExecutor"]
