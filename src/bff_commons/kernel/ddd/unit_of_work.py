"""Unit of Work port — the "run X atomically" transaction boundary."""

from __future__ import annotations

import abc
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class UnitOfWork(abc.ABC):
    """Port: transactional unit of work.

    Business operations write their state change and their outbox row
    through the same unit of work so both commit or neither does::

        async def decide(uow):
            uow.session.add(approval_row)
            await publisher.enqueue(event, session=uow.session)

        await uow.run(decide)
    """

    session: Any = None

    @abc.abstractmethod
    async def commit(self) -> None: ...

    @abc.abstractmethod
    async def rollback(self) -> None: ...

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    async def run(self, work: Callable[["UnitOfWork"], Awaitable[T]]) -> T:
        """Execute *work* inside a transaction, committing only on success."""
        async with self as uow:
            return await work(uow)


__all__ = ["UnitOfWork"]
