"""Application eventing – in-process fan-out event bus."""
from bff_commons.application.eventing.bus import (
    EventHandler,
    Handler,
    HandlerOutcome,
    InProcessEventBus,
    PublishOutcome,
    handler_name,
)

__all__ = [
    "EventHandler",
    "Handler",
    "HandlerOutcome",
    "InProcessEventBus",
    "PublishOutcome",
    "handler_name",
]
