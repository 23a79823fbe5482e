"""Unit tests for request hashing and IdempotencyService."""
from __future__ import annotations

import asyncio
import dataclasses
import os
import subprocess
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest

import bff_commons
from bff_commons.application.idempotency import (
    IdempotencyService,
    canonical_json,
    error_summary,
    hash_request,
)
from bff_commons.config import IdempotencySettings
from bff_commons.kernel.errors import (
    IdempotencyConflictError,
    IdempotencyMismatchError,
    NotFoundError,
)
from bff_commons.kernel.messaging import IdempotencyKey, IdempotencyRecord, IdempotencyStatus
from bff_commons.testing.fakes import FakeClock, InMemoryIdempotencyStore

SCOPE = "approvals.decide"
TENANT = "tenant-1"


class Counter:
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.calls = 0
        self.result = result if result is not None else {"id": "apr-1", "status": "APPROVED"}
        self.error = error

    async def __call__(self) -> Any:
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


def _service() -> tuple[IdempotencyService, InMemoryIdempotencyStore]:
    clock = FakeClock()
    store = InMemoryIdempotencyStore(clock=clock)
    return IdempotencyService(store), store


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class TestHashing:
    def test_key_order_independent(self) -> None:
        assert hash_request({"a": 1, "b": {"x": 1, "y": 2}}) == hash_request({"b": {"y": 2, "x": 1}, "a": 1})

    def test_value_change_changes_hash(self) -> None:
        assert hash_request({"decision": "APPROVED"}) != hash_request({"decision": "REJECTED"})

    def test_sha256_hex(self) -> None:
        digest = hash_request({})
        assert len(digest) == 64
        int(digest, 16)

    def test_canonical_json_compact_sorted(self) -> None:
        assert canonical_json({"b": 1, "a": [1, {"d": 1, "c": 2}]}) == '{"a":[1,{"c":2,"d":1}],"b":1}'

    def test_dataclass_bodies(self) -> None:
        @dataclasses.dataclass
        class Decision:
            decision: str
            comment: str | None = None

        assert hash_request(Decision("APPROVED")) == hash_request({"comment": None, "decision": "APPROVED"})

    def test_sets_hash_independent_of_insertion_order(self) -> None:
        forward = {"tags": {"alpha", "beta", "gamma", "delta"}}
        backward = {"tags": set(reversed(["alpha", "beta", "gamma", "delta"]))}
        assert canonical_json(forward) == '{"tags":["alpha","beta","delta","gamma"]}'
        assert hash_request(forward) == hash_request(backward)

    def test_frozenset_of_tuples_sorted(self) -> None:
        assert canonical_json(frozenset({(2, "b"), (1, "a")})) == '[[1,"a"],[2,"b"]]'

    def test_set_hash_stable_across_hash_seeds(self) -> None:
        script = (
            "from bff_commons.application.idempotency import hash_request;"
            "print(hash_request({'tags': {'red', 'green', 'blue', 'cyan', 'plum'}}))"
        )
        src = str(Path(bff_commons.__file__).resolve().parents[1])
        digests = set()
        for seed in range(5):
            env = {**os.environ, "PYTHONHASHSEED": str(seed), "PYTHONPATH": src}
            out = subprocess.run([sys.executable, "-c", script], env=env, capture_output=True, text=True, check=True)
            digests.add(out.stdout.strip())
        assert len(digests) == 1

    def test_error_summary(self) -> None:
        assert error_summary(ValueError("bad")) == {"name": "ValueError", "message": "bad"}
        summary = error_summary(NotFoundError("Approval", "1"))
        assert summary["code"] == "not_found"


# ---------------------------------------------------------------------------
# guard
# ---------------------------------------------------------------------------


class TestGuard:
    def test_first_call_runs_operation(self) -> None:
        service, store = _service()
        op = Counter()

        result = asyncio.run(service.guard(SCOPE, "k1", TENANT, {"decision": "APPROVED"}, op, success_status=201))

        assert result.is_new
        assert result.http_status == 201
        assert result.response == {"id": "apr-1", "status": "APPROVED"}
        assert op.calls == 1
        [record] = store.all_records()
        assert record.status is IdempotencyStatus.COMPLETED
        assert record.http_status == 201

    def test_first_call_returns_stored_form(self) -> None:
        @dataclasses.dataclass
        class Approval:
            id: str
            status: str

        service, _ = _service()
        op = Counter(result=Approval("apr-1", "APPROVED"))

        async def run() -> None:
            first = await service.guard(SCOPE, "k1", TENANT, {"x": 1}, op)
            second = await service.guard(SCOPE, "k1", TENANT, {"x": 1}, op)
            assert first.response == {"id": "apr-1", "status": "APPROVED"}
            assert second.response == first.response

        asyncio.run(run())

    def test_replay_returns_cached_without_running(self) -> None:
        service, _ = _service()
        op = Counter()

        async def run() -> None:
            first = await service.guard(SCOPE, "k1", TENANT, {"decision": "APPROVED"}, op, success_status=201)
            second = await service.guard(SCOPE, "k1", TENANT, {"decision": "APPROVED"}, op, success_status=201)
            assert not second.is_new
            assert second.response == first.response
            assert second.http_status == 201

        asyncio.run(run())
        assert op.calls == 1

    def test_replay_ignores_key_order(self) -> None:
        service, _ = _service()
        op = Counter()

        async def run() -> None:
            await service.guard(SCOPE, "k1", TENANT, {"a": 1, "b": 2}, op)
            replay = await service.guard(SCOPE, "k1", TENANT, {"b": 2, "a": 1}, op)
            assert not replay.is_new

        asyncio.run(run())
        assert op.calls == 1

    def test_mismatch_raises(self) -> None:
        service, _ = _service()
        op = Counter()

        async def run() -> None:
            await service.guard(SCOPE, "k1", TENANT, {"decision": "APPROVED"}, op)
            with pytest.raises(IdempotencyMismatchError) as exc_info:
                await service.guard(SCOPE, "k1", TENANT, {"decision": "REJECTED"}, op)
            assert exc_info.value.detail["issue"] == "REQUEST_MISMATCH"
            assert exc_info.value.record_id is not None

        asyncio.run(run())
        assert op.calls == 1

    def test_keys_isolated_by_scope_and_tenant(self) -> None:
        service, _ = _service()
        op = Counter()

        async def run() -> None:
            await service.guard(SCOPE, "k1", TENANT, {"x": 1}, op)
            await service.guard("points.redeem", "k1", TENANT, {"x": 1}, op)
            await service.guard(SCOPE, "k1", "tenant-2", {"x": 1}, op)

        asyncio.run(run())
        assert op.calls == 3

    def test_concurrent_same_key_conflicts(self) -> None:
        service, _ = _service()
        op = Counter()

        async def run() -> list[Any]:
            return await asyncio.gather(
                service.guard(SCOPE, "k1", TENANT, {"x": 1}, op),
                service.guard(SCOPE, "k1", TENANT, {"x": 1}, op),
                return_exceptions=True,
            )

        first, second = asyncio.run(run())
        assert first.is_new
        assert isinstance(second, IdempotencyConflictError)
        assert second.status_code == 409
        assert op.calls == 1

    def test_failure_marks_failed_and_reraises(self) -> None:
        service, store = _service()
        op = Counter(error=NotFoundError("Approval", "apr-1"))

        with pytest.raises(NotFoundError):
            asyncio.run(service.guard(SCOPE, "k1", TENANT, {"x": 1}, op))

        [record] = store.all_records()
        assert record.status is IdempotencyStatus.FAILED
        assert record.http_status == 404
        assert record.error_payload == {"name": "NotFoundError", "message": "Approval 'apr-1' not found", "code": "not_found"}

    def test_failure_without_status_records_500(self) -> None:
        service, store = _service()

        with pytest.raises(RuntimeError):
            asyncio.run(service.guard(SCOPE, "k1", TENANT, {"x": 1}, Counter(error=RuntimeError("boom"))))

        assert store.all_records()[0].http_status == 500

    def test_retry_after_failure_runs_again(self) -> None:
        service, store = _service()
        failing = Counter(error=RuntimeError("boom"))
        succeeding = Counter()

        async def run() -> None:
            with pytest.raises(RuntimeError):
                await service.guard(SCOPE, "k1", TENANT, {"x": 1}, failing)
            result = await service.guard(SCOPE, "k1", TENANT, {"x": 1}, succeeding)
            assert result.is_new

        asyncio.run(run())
        assert succeeding.calls == 1
        [record] = store.all_records()
        assert record.status is IdempotencyStatus.COMPLETED

    def test_cancelled_operation_frees_key(self) -> None:
        service, store = _service()
        succeeding = Counter()

        async def run() -> None:
            started = asyncio.Event()

            async def hangs() -> None:
                started.set()
                await asyncio.Event().wait()

            task = asyncio.create_task(service.guard(SCOPE, "k1", TENANT, {"x": 1}, hangs))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            [record] = store.all_records()
            assert record.status is IdempotencyStatus.FAILED
            assert record.error_payload["name"] == "CancelledError"

            result = await service.guard(SCOPE, "k1", TENANT, {"x": 1}, succeeding)
            assert result.is_new

        asyncio.run(run())
        assert succeeding.calls == 1

    def test_expired_record_treated_as_new(self) -> None:
        clock = FakeClock()
        store = InMemoryIdempotencyStore(clock=clock)
        service = IdempotencyService(store, ttl=timedelta(hours=1))
        op = Counter()

        async def run() -> None:
            await service.guard(SCOPE, "k1", TENANT, {"x": 1}, op)
            clock.advance(hours=2)
            again = await service.guard(SCOPE, "k1", TENANT, {"x": 2}, op)
            assert again.is_new

        asyncio.run(run())
        assert op.calls == 2

    def test_purge_expired(self) -> None:
        clock = FakeClock()
        store = InMemoryIdempotencyStore(clock=clock)
        service = IdempotencyService(store)

        async def run() -> int:
            await service.guard(SCOPE, "k1", TENANT, {"x": 1}, Counter(), ttl=timedelta(minutes=5))
            await service.guard(SCOPE, "k2", TENANT, {"x": 1}, Counter())
            clock.advance(minutes=10)
            return await service.purge_expired()

        assert asyncio.run(run()) == 1
        assert [r.idem_key for r in store.all_records()] == ["k2"]


# ---------------------------------------------------------------------------
# check_or_create
# ---------------------------------------------------------------------------


class RacingStore(InMemoryIdempotencyStore):
    """Simulates a competitor inserting between our lookup and our insert."""

    async def find(self, key: IdempotencyKey) -> IdempotencyRecord | None:
        found = await super().find(key)
        if found is None:
            await super().create(key, "competitor-hash")
        return None


class TestCheckOrCreate:
    def test_in_progress_conflicts(self) -> None:
        service, _ = _service()
        key = IdempotencyKey(SCOPE, "k1", TENANT)

        async def run() -> None:
            created = await service.check_or_create(key, {"x": 1})
            assert created.is_new
            with pytest.raises(IdempotencyConflictError) as exc_info:
                await service.check_or_create(key, {"x": 1})
            assert exc_info.value.record_id == created.record.id

        asyncio.run(run())

    def test_unique_violation_surfaces_as_conflict(self) -> None:
        service = IdempotencyService(RacingStore(clock=FakeClock()))

        with pytest.raises(IdempotencyConflictError):
            asyncio.run(service.check_or_create(IdempotencyKey(SCOPE, "k1", TENANT), {"x": 1}))

    def test_complete_stores_jsonable_payload(self) -> None:
        service, store = _service()

        @dataclasses.dataclass
        class Response:
            id: str

        async def run() -> None:
            check = await service.check_or_create(IdempotencyKey(SCOPE, "k1", TENANT), {"x": 1})
            await service.complete(check.record.id, Response("apr-1"), 201)

        asyncio.run(run())
        [record] = store.all_records()
        assert record.response_payload == {"id": "apr-1"}
        assert record.http_status == 201


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestServiceSettings:
    def test_default_ttl(self) -> None:
        assert IdempotencyService(InMemoryIdempotencyStore()).ttl == timedelta(hours=24)

    def test_ttl_from_settings(self) -> None:
        service = IdempotencyService(InMemoryIdempotencyStore(), IdempotencySettings(ttl_hours=2))
        assert service.ttl == timedelta(hours=2)

    def test_explicit_ttl_wins_over_settings(self) -> None:
        service = IdempotencyService(
            InMemoryIdempotencyStore(), IdempotencySettings(ttl_hours=2), ttl=timedelta(minutes=5)
        )
        assert service.ttl == timedelta(minutes=5)

    def test_settings_ttl_applied_to_records(self) -> None:
        clock = FakeClock()
        store = InMemoryIdempotencyStore(clock=clock)
        service = IdempotencyService(store, IdempotencySettings(ttl_hours=1))

        asyncio.run(service.guard(SCOPE, "k1", TENANT, {"x": 1}, Counter()))

        [record] = store.all_records()
        assert record.expires_at - record.created_at == timedelta(hours=1)
