"""Application eventing – EventHandler, InProcessEventBus with per-handler retry."""

from __future__ import annotations

import abc
import asyncio
import dataclasses
import logging
import threading
from typing import Any, Awaitable, Callable, Iterable, Union

from bff_commons.kernel.ddd.domain_event import DomainEvent
from bff_commons.kernel.errors import EventDeliveryError, UpstreamServiceError
from bff_commons.resilience.retry import RetryExecutor, RetryPolicy, RetryPresets

logger = logging.getLogger(__name__)


class EventHandler(abc.ABC):
    """Handle events of one ``event_type``."""

    event_type: str = ""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abc.abstractmethod
    async def handle(self, event: DomainEvent) -> None: ...


HandlerFunc = Callable[[DomainEvent], Awaitable[None]]
Handler = Union[EventHandler, HandlerFunc]


def handler_name(handler: Handler) -> str:
    if isinstance(handler, EventHandler):
        return handler.name
    return getattr(handler, "__qualname__", None) or type(handler).__name__


@dataclasses.dataclass(frozen=True)
class HandlerOutcome:
    handler: str
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclasses.dataclass(frozen=True)
class PublishOutcome:
    """Per-handler results of one ``publish`` call."""

    event_type: str
    event_id: str
    handlers: tuple[HandlerOutcome, ...] = ()

    @property
    def succeeded(self) -> bool:
        return all(h.succeeded for h in self.handlers)

    @property
    def failures(self) -> dict[str, str]:
        return {h.handler: h.error for h in self.handlers if h.error is not None}


class InProcessEventBus:
    """Fan-out of a published event to every handler registered for its type.

    Handlers run concurrently via :func:`asyncio.gather`; each one is wrapped
    in the :class:`RetryExecutor` with its own budget, and a failing handler
    never prevents its siblings from running or being recorded.

    The registry is copy-on-write: ``publish`` iterates an immutable tuple
    snapshot, so handlers may be (un)registered while events are in flight.
    """

    def __init__(
        self,
        retry_executor: RetryExecutor | None = None,
        handler_policy: RetryPolicy = RetryPresets.STANDARD,
    ) -> None:
        self._retry = retry_executor or RetryExecutor()
        self._policy = handler_policy
        self._handlers: dict[str, tuple[Handler, ...]] = {}
        self._lock = threading.Lock()

    def register_handler(self, event_type: str, handler: Handler) -> None:
        with self._lock:
            current = self._handlers.get(event_type, ())
            if handler in current:
                return
            self._handlers = {**self._handlers, event_type: (*current, handler)}
        logger.info("event_bus.handler_registered handler=%s event_type=%s", handler_name(handler), event_type)

    def register(self, handler: EventHandler) -> None:
        """Register a class-based handler under its declared ``event_type``."""
        if not handler.event_type:
            raise ValueError(f"{handler.name} does not declare an event_type")
        self.register_handler(handler.event_type, handler)

    def unregister_handler(self, event_type: str, handler: Handler) -> None:
        with self._lock:
            current = self._handlers.get(event_type, ())
            if handler not in current:
                return
            remaining = tuple(h for h in current if h != handler)
            handlers = dict(self._handlers)
            if remaining:
                handlers[event_type] = remaining
            else:
                handlers.pop(event_type, None)
            self._handlers = handlers
        logger.info("event_bus.handler_unregistered handler=%s event_type=%s", handler_name(handler), event_type)

    def handlers_for(self, event_type: str) -> tuple[Handler, ...]:
        return self._handlers.get(event_type, ())

    async def publish(self, event: DomainEvent, *, raise_on_failure: bool = False) -> PublishOutcome:
        """Deliver *event* to all its handlers and wait for every one of them.

        With no handler registered this is a no-op. Failures are logged and
        reported in the returned outcome; with ``raise_on_failure`` they are
        raised as a single :class:`EventDeliveryError` after all handlers ran.
        """
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            logger.debug("event_bus.no_handlers event_type=%s", event.event_type)
            return PublishOutcome(event_type=event.event_type, event_id=event.event_id)

        logger.debug("event_bus.publish event_type=%s handlers=%d", event.event_type, len(handlers))
        results = await asyncio.gather(
            *(self._run_handler(handler, event) for handler in handlers),
            return_exceptions=True,
        )

        outcomes: list[HandlerOutcome] = []
        for handler, result in zip(handlers, results):
            name = handler_name(handler)
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failure = UpstreamServiceError(name, str(result), cause=result)
                logger.error(
                    "event_bus.handler_failed handler=%s event_type=%s event_id=%s error=%s",
                    name,
                    event.event_type,
                    event.event_id,
                    failure.message,
                )
                outcomes.append(HandlerOutcome(handler=name, error=str(result) or type(result).__name__))
            else:
                outcomes.append(HandlerOutcome(handler=name))

        outcome = PublishOutcome(event_type=event.event_type, event_id=event.event_id, handlers=tuple(outcomes))
        if raise_on_failure and not outcome.succeeded:
            raise EventDeliveryError(event.event_type, outcome.failures)
        return outcome

    async def publish_all(self, events: Iterable[DomainEvent]) -> list[PublishOutcome]:
        return list(await asyncio.gather(*(self.publish(event) for event in events)))

    async def _run_handler(self, handler: Handler, event: DomainEvent) -> Any:
        call = handler.handle if isinstance(handler, EventHandler) else handler
        return await self._retry.execute(
            lambda: call(event),
            self._policy,
            f"{handler_name(handler)}:{event.event_type}",
        )


__all__ = [
    "EventHandler",
    "Handler",
    "HandlerOutcome",
    "InProcessEventBus",
    "PublishOutcome",
    "handler_name",
]
