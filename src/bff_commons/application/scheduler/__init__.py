"""Application scheduler – interval jobs, APScheduler runner and in-memory fake."""
from bff_commons.application.scheduler.apscheduler import APSchedulerAdapter
from bff_commons.application.scheduler.in_memory import InMemoryScheduler
from bff_commons.application.scheduler.job import Job
from bff_commons.application.scheduler.scheduler import (
    JobExecutedEvent,
    JobExecutionContext,
    Scheduler,
)

__all__ = [
    "APSchedulerAdapter",
    "InMemoryScheduler",
    "Job",
    "JobExecutedEvent",
    "JobExecutionContext",
    "Scheduler",
]
