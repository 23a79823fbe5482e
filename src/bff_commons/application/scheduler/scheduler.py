"""Application scheduler – Scheduler port and the single-run executor shared by runners."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from bff_commons.application.scheduler.job import Job
from bff_commons.kernel.time import Clock, SystemClock

__all__ = ["JobExecutedEvent", "JobExecutionContext", "Scheduler"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobExecutedEvent:
    """Outcome of one run of a job."""

    job_id: str
    job_name: str
    started_at: datetime
    duration_ms: float
    error: str | None = None
    error_type: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class JobExecutionContext:
    """Execute ``job.handler`` once per ``run()`` and keep every outcome in ``events``.

    Handler exceptions are logged and folded into the returned event so the
    runner's loop keeps going; cancellation still propagates.
    """

    job: Job
    clock: Clock = field(default_factory=SystemClock)
    events: list[JobExecutedEvent] = field(default_factory=list)

    async def run(self) -> JobExecutedEvent:
        started_at = self.clock.now()
        t0 = time.perf_counter()
        error: str | None = None
        error_type: str | None = None
        try:
            await self.job.handler()
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__
            error_type = type(exc).__name__
            logger.exception("scheduler.job_failed job_id=%s", self.job.id)
        elapsed = (time.perf_counter() - t0) * 1000
        if error is None:
            logger.debug("scheduler.job_done job_id=%s duration_ms=%.1f", self.job.id, elapsed)
        event = JobExecutedEvent(
            job_id=self.job.id,
            job_name=self.job.name,
            started_at=started_at,
            duration_ms=elapsed,
            error=error,
            error_type=error_type,
        )
        self.events.append(event)
        return event


@runtime_checkable
class Scheduler(Protocol):
    """Port implemented by :class:`APSchedulerAdapter` and :class:`InMemoryScheduler`."""

    def add_job(self, job: Job) -> None: ...
    def remove_job(self, job_id: str) -> None: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def list_jobs(self) -> list[Job]: ...
