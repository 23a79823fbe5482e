"""SQLAlchemy adapter – tables, session factory, UoW, outbox and idempotency stores."""
from bff_commons.adapters.sqlalchemy.idempotency import SqlAlchemyIdempotencyStore
from bff_commons.adapters.sqlalchemy.models import Base, IdempotencyRecordModel, OutboxEventModel
from bff_commons.adapters.sqlalchemy.outbox import SqlAlchemyOutboxRepository
from bff_commons.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from bff_commons.adapters.sqlalchemy.uow import SqlAlchemyUnitOfWork

__all__ = [
    "Base",
    "IdempotencyRecordModel",
    "OutboxEventModel",
    "SqlAlchemyIdempotencyStore",
    "SqlAlchemyOutboxRepository",
    "SqlAlchemySessionFactory",
    "SqlAlchemyUnitOfWork",
]
