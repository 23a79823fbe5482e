"""Testing fakes – FakeClock factory and RecordingSleeper."""
from __future__ import annotations

from datetime import UTC, datetime

from bff_commons.kernel.time import FrozenClock


def FakeClock() -> FrozenClock:
    """Return a ``FrozenClock`` pinned to 2026-01-01 12:00 UTC."""
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


class RecordingSleeper:
    """:class:`~bff_commons.kernel.time.Sleeper` that records delays instead of sleeping.

    When given a clock, each sleep also advances it, so code that sleeps and
    then reads the time sees a consistent world.
    """

    def __init__(self, clock: FrozenClock | None = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds=seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


__all__ = ["FakeClock", "RecordingSleeper"]
