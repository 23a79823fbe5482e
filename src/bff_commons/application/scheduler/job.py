"""Application scheduler – Job dataclass."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

__all__ = ["Job"]


@dataclass
class Job:
    """A recurring background job run every ``interval_seconds``."""

    id: str
    name: str
    handler: Callable[[], Awaitable[object]]
    interval_seconds: float
    enabled: bool = True
    run_immediately: bool = False

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError(f"Job '{self.id}' needs a positive interval_seconds")
