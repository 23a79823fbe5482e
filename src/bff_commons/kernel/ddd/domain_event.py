"""Domain events exchanged between business code, the outbox and the event bus."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """A fact produced by an aggregate.

    ``event_type`` is the routing discriminator (e.g. ``"approval.decided"``);
    ``payload`` must be JSON-serialisable because it is stored verbatim in the
    outbox and rebuilt by the dispatcher.

    Example::

        event = DomainEvent(
            event_type="approval.decided",
            aggregate_type="Approval",
            aggregate_id="apr-1",
            payload={"decision": "APPROVED", "decided_by": "u-7"},
        )
    """

    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: dict[str, Any] = dataclasses.field(default_factory=dict)
    correlation_id: str | None = None
    tenant_id: str | None = None
    occurred_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()))

    def to_payload(self) -> dict[str, Any]:
        return dict(self.payload)


__all__ = ["DomainEvent"]
