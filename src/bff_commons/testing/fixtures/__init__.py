"""Testing fixtures – pytest plugin exposing the fake doubles.

Enable in your ``conftest.py``::

    pytest_plugins = ["bff_commons.testing.fixtures"]
"""
from bff_commons.testing.fixtures.clock import fake_clock, recording_sleeper
from bff_commons.testing.fixtures.correlation import correlation_fixture
from bff_commons.testing.fixtures.stores import event_bus, fake_idempotency_store, fake_outbox_repo

__all__ = [
    "correlation_fixture",
    "event_bus",
    "fake_clock",
    "fake_idempotency_store",
    "fake_outbox_repo",
    "recording_sleeper",
]
