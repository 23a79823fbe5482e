"""Testing support – in-memory fakes and pytest fixtures.

Import in your ``conftest.py``::

    pytest_plugins = ["bff_commons.testing.fixtures"]
"""

from bff_commons.testing.fakes import (
    FakeClock,
    InMemoryIdempotencyStore,
    InMemoryOutboxRepository,
    RecordingSleeper,
)

__all__ = [
    "FakeClock",
    "InMemoryIdempotencyStore",
    "InMemoryOutboxRepository",
    "RecordingSleeper",
]
