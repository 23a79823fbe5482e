"""Application scheduler – InMemoryScheduler: jobs run only when a test says so."""
from __future__ import annotations

from bff_commons.application.scheduler.job import Job
from bff_commons.application.scheduler.scheduler import JobExecutedEvent, JobExecutionContext
from bff_commons.kernel.time import Clock, SystemClock

__all__ = ["InMemoryScheduler"]


class InMemoryScheduler:
    """Drop-in for :class:`APSchedulerAdapter` without background tasks.

    ``start``/``stop`` only flip ``is_running``; ``trigger`` and ``tick`` run
    handlers inline and append each outcome to ``execution_log``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or SystemClock()
        self._contexts: dict[str, JobExecutionContext] = {}
        self._running = False
        self.execution_log: list[JobExecutedEvent] = []

    def add_job(self, job: Job) -> None:
        if job.id in self._contexts:
            raise ValueError(f"Job '{job.id}' is already scheduled")
        self._contexts[job.id] = JobExecutionContext(job=job, clock=self._clock)

    def remove_job(self, job_id: str) -> None:
        self._contexts.pop(job_id, None)

    def list_jobs(self) -> list[Job]:
        return [ctx.job for ctx in self._contexts.values()]

    def runs_for(self, job_id: str) -> list[JobExecutedEvent]:
        return [e for e in self.execution_log if e.job_id == job_id]

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def trigger(self, job_id: str) -> JobExecutedEvent:
        """Run *job_id* once, even if it is disabled."""
        ctx = self._contexts.get(job_id)
        if ctx is None:
            raise LookupError(f"No job scheduled with id '{job_id}'")
        event = await ctx.run()
        self.execution_log.append(event)
        return event

    async def tick(self) -> list[JobExecutedEvent]:
        """One pass over enabled jobs in the order they were added."""
        enabled = [job_id for job_id, ctx in self._contexts.items() if ctx.job.enabled]
        return [await self.trigger(job_id) for job_id in enabled]
