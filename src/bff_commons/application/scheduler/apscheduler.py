"""Application scheduler – APSchedulerAdapter (APScheduler 3.x ``AsyncIOScheduler``)."""
from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from bff_commons.application.scheduler.job import Job
from bff_commons.application.scheduler.scheduler import JobExecutedEvent, JobExecutionContext
from bff_commons.kernel.time import Clock, SystemClock

__all__ = ["APSchedulerAdapter"]

logger = logging.getLogger(__name__)


class APSchedulerAdapter:
    """Scheduler backed by APScheduler's asyncio scheduler.

    Every enabled job becomes an interval schedule with ``max_instances=1``
    and ``coalesce=True``, so runs of one job never overlap and missed ticks
    collapse into one. ``stop()`` pauses the schedule, waits for handlers
    that are mid-run and only then shuts APScheduler down.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or SystemClock()
        self._contexts: dict[str, JobExecutionContext] = {}
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight: set[str] = set()
        self._drained = asyncio.Event()
        self._drained.set()
        self._stopping = False
        self.last_runs: dict[str, JobExecutedEvent] = {}

    def add_job(self, job: Job) -> None:
        if job.id in self._contexts:
            raise ValueError(f"Job '{job.id}' is already scheduled")
        self._contexts[job.id] = JobExecutionContext(job=job, clock=self._clock)
        if self._scheduler is not None:
            self._register(self._scheduler, job)

    def remove_job(self, job_id: str) -> None:
        self._contexts.pop(job_id, None)
        if self._scheduler is not None and self._scheduler.get_job(job_id) is not None:
            self._scheduler.remove_job(job_id)

    def list_jobs(self) -> list[Job]:
        return [ctx.job for ctx in self._contexts.values()]

    def scheduled_ids(self) -> list[str]:
        """Ids APScheduler currently holds; disabled jobs never appear here."""
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self) -> None:
        if self._scheduler is not None:
            return
        self._stopping = False
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone="UTC")
        for ctx in self._contexts.values():
            self._register(scheduler, ctx.job)
        scheduler.start()
        self._scheduler = scheduler
        logger.info("scheduler.started jobs=%d", len(scheduler.get_jobs()))

    async def stop(self) -> None:
        scheduler = self._scheduler
        if scheduler is None:
            return
        self._stopping = True
        scheduler.pause()
        await self._drained.wait()
        scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("scheduler.stopped")

    def _register(self, scheduler: AsyncIOScheduler, job: Job) -> None:
        if not job.enabled:
            logger.info("scheduler.job_disabled job_id=%s", job.id)
            return
        options: dict[str, Any] = {}
        if job.run_immediately:
            options["next_run_time"] = datetime.now(UTC)
        scheduler.add_job(
            self._run,
            IntervalTrigger(seconds=job.interval_seconds),
            args=[job.id],
            id=job.id,
            name=job.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **options,
        )

    async def _run(self, job_id: str) -> None:
        ctx = self._contexts.get(job_id)
        if ctx is None or self._stopping:
            return
        self._in_flight.add(job_id)
        self._drained.clear()
        try:
            self.last_runs[job_id] = await ctx.run()
        finally:
            self._in_flight.discard(job_id)
            if not self._in_flight:
                self._drained.set()
