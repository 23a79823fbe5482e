"""DDD building blocks used by the reliability core."""

from bff_commons.kernel.ddd.domain_event import DomainEvent
from bff_commons.kernel.ddd.unit_of_work import UnitOfWork

__all__ = ["DomainEvent", "UnitOfWork"]
