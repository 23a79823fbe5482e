"""Kernel messaging – idempotency record and store port."""
from __future__ import annotations

import abc
import dataclasses
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import uuid4

DEFAULT_TTL = timedelta(hours=24)


class IdempotencyStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclasses.dataclass(frozen=True)
class IdempotencyKey:
    """Dedup key = (scope, client key, tenant).

    ``scope`` names the guarded operation (e.g. ``"approvals.decide"``) and
    must stay stable across deployments.
    """

    scope: str
    idem_key: str
    tenant_id: str

    def __str__(self) -> str:
        return f"{self.tenant_id}:{self.scope}:{self.idem_key}"


@dataclasses.dataclass
class IdempotencyRecord:
    """Stored fingerprint and outcome of a guarded request."""

    scope: str
    idem_key: str
    tenant_id: str
    request_hash: str
    id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    status: IdempotencyStatus = IdempotencyStatus.IN_PROGRESS
    http_status: int | None = None
    response_payload: Any = None
    error_payload: dict[str, Any] | None = None
    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC) + DEFAULT_TTL)

    @property
    def key(self) -> IdempotencyKey:
        return IdempotencyKey(self.scope, self.idem_key, self.tenant_id)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class IdempotencyStore(abc.ABC):
    """Port: durable idempotency records.

    ``create`` must be backed by a unique constraint on
    ``(scope, idem_key, tenant_id)`` and raise
    :class:`~bff_commons.kernel.errors.DuplicateIdempotencyKeyError` when it
    fires, so that two concurrent first requests cannot both proceed.
    """

    @abc.abstractmethod
    async def find(self, key: IdempotencyKey) -> IdempotencyRecord | None:
        """Return the unexpired record for *key*, if any."""

    @abc.abstractmethod
    async def create(self, key: IdempotencyKey, request_hash: str, ttl: timedelta = DEFAULT_TTL) -> IdempotencyRecord: ...

    @abc.abstractmethod
    async def mark_completed(self, record_id: str, http_status: int, response_payload: Any) -> None: ...

    @abc.abstractmethod
    async def mark_failed(self, record_id: str, http_status: int, error_payload: dict[str, Any]) -> None: ...

    @abc.abstractmethod
    async def delete(self, record_id: str) -> None: ...

    @abc.abstractmethod
    async def delete_expired(self) -> int: ...


__all__ = [
    "DEFAULT_TTL",
    "IdempotencyKey",
    "IdempotencyRecord",
    "IdempotencyStatus",
    "IdempotencyStore",
]
