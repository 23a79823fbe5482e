"""Testing fakes – in-memory doubles for kernel ports."""
from bff_commons.kernel.time import FrozenClock
from bff_commons.testing.fakes.clock import FakeClock, RecordingSleeper
from bff_commons.testing.fakes.idempotency import InMemoryIdempotencyStore
from bff_commons.testing.fakes.outbox import InMemoryOutboxRepository

__all__ = [
    "FakeClock",
    "FrozenClock",
    "InMemoryIdempotencyStore",
    "InMemoryOutboxRepository",
    "RecordingSleeper",
]
