"""Kernel time – Clock / Sleeper ports + implementations."""
from bff_commons.kernel.time.clock import (
    Clock,
    FrozenClock,
    Sleeper,
    SystemClock,
    asyncio_sleep,
    ensure_utc,
    utc_now,
)

__all__ = ["Clock", "FrozenClock", "Sleeper", "SystemClock", "asyncio_sleep", "ensure_utc", "utc_now"]
