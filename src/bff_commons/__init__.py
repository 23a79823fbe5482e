"""
bff_commons – reliable event delivery and idempotent execution for BFF services.

Import path convention::

    from bff_commons.kernel.errors import IdempotencyConflictError
    from bff_commons.kernel.ddd import DomainEvent
    from bff_commons.application.outbox import OutboxPublisher, OutboxDispatcher
    from bff_commons.adapters.sqlalchemy import SqlAlchemyOutboxRepository
    from bff_commons.adapters.fastapi import FastAPIExceptionMapper
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
