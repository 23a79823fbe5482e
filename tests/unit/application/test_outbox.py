"""Unit tests for OutboxPublisher and OutboxDispatcher (in-memory store)."""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from bff_commons.application.eventing import InProcessEventBus
from bff_commons.application.idempotency import IdempotencyService
from bff_commons.application.outbox import (
    DISPATCH_JOB_ID,
    IDEMPOTENCY_CLEANUP_JOB_ID,
    PURGE_JOB_ID,
    RECLAIM_JOB_ID,
    OutboxDispatcher,
    OutboxPublisher,
)
from bff_commons.config import IdempotencySettings, OutboxSettings
from bff_commons.kernel.ddd import DomainEvent
from bff_commons.kernel.errors import NotFoundError, OutboxStateError
from bff_commons.kernel.messaging import OutboxStatus
from bff_commons.kernel.time import FrozenClock
from bff_commons.observability.correlation import CorrelationContext, RequestContext
from bff_commons.resilience.retry import RetryExecutor
from bff_commons.testing.fakes import (
    FakeClock,
    InMemoryIdempotencyStore,
    InMemoryOutboxRepository,
    RecordingSleeper,
)


def _event(aggregate_id: str = "apr-1", **kwargs: object) -> DomainEvent:
    return DomainEvent(
        event_type="approval.decided",
        aggregate_type="Approval",
        aggregate_id=aggregate_id,
        payload={"decision": "APPROVED"},
        **kwargs,  # type: ignore[arg-type]
    )


class World:
    """Wires a clock, in-memory store, bus, publisher and dispatcher."""

    def __init__(self, **settings: object) -> None:
        self.clock: FrozenClock = FakeClock()
        self.repo = InMemoryOutboxRepository(clock=self.clock)
        self.bus = InProcessEventBus(retry_executor=RetryExecutor(sleep=RecordingSleeper()))
        self.settings = OutboxSettings(**settings)  # type: ignore[arg-type]
        self.publisher = OutboxPublisher(
            self.repo, self.bus, clock=self.clock, max_retries=self.settings.max_retries
        )
        self.dispatcher = OutboxDispatcher(self.repo, self.bus, self.settings)
        self.delivered: list[DomainEvent] = []

    def recording_handler(self) -> None:
        async def handler(event: DomainEvent) -> None:
            self.delivered.append(event)

        self.bus.register_handler("approval.decided", handler)

    def failing_handler(self, message: str = "invalid approval state") -> None:
        async def handler(event: DomainEvent) -> None:
            raise ValueError(message)

        self.bus.register_handler("approval.decided", handler)


# ---------------------------------------------------------------------------
# OutboxPublisher
# ---------------------------------------------------------------------------


class TestOutboxPublisher:
    def test_enqueue_creates_pending_record(self) -> None:
        w = World()
        record = asyncio.run(w.publisher.enqueue(_event(tenant_id="t1")))

        stored = asyncio.run(w.repo.get(record.id))
        assert stored is not None
        assert stored.status is OutboxStatus.PENDING
        assert stored.scheduled_at == w.clock.now()
        assert stored.tenant_id == "t1"
        assert stored.max_retries == 5

    def test_enqueue_joins_session(self) -> None:
        w = World()
        session = object()
        record = asyncio.run(w.publisher.enqueue(_event(), session))
        assert w.repo.enqueued_with_session == [(record.id, session)]

    def test_enqueue_uses_ambient_correlation_id(self) -> None:
        w = World()

        async def run() -> str | None:
            token = CorrelationContext.set(RequestContext(correlation_id="corr-42"))
            try:
                record = await w.publisher.enqueue(_event())
            finally:
                CorrelationContext.reset(token)
            return record.correlation_id

        assert asyncio.run(run()) == "corr-42"

    def test_explicit_correlation_id_wins(self) -> None:
        w = World()

        async def run() -> str | None:
            token = CorrelationContext.set(RequestContext(correlation_id="ambient"))
            try:
                record = await w.publisher.enqueue(_event(correlation_id="explicit"))
            finally:
                CorrelationContext.reset(token)
            return record.correlation_id

        assert asyncio.run(run()) == "explicit"

    def test_enqueue_raw_and_all(self) -> None:
        w = World()

        async def run() -> None:
            raw = await w.publisher.enqueue_raw(
                "approval.decided", "Approval", "apr-9", {"decision": "REJECTED"}, metadata={"source": "bff"}
            )
            assert raw.metadata == {"source": "bff"}
            records = await w.publisher.enqueue_all([_event("a"), _event("b")])
            assert [r.aggregate_id for r in records] == ["a", "b"]

        asyncio.run(run())
        assert len(w.repo.all_records()) == 3

    def test_publish_now_delivers(self) -> None:
        w = World()
        w.recording_handler()
        assert asyncio.run(w.publisher.publish_now(_event())) is True
        assert len(w.delivered) == 1

    def test_publish_now_swallows_failures(self) -> None:
        w = World()
        w.failing_handler()
        assert asyncio.run(w.publisher.publish_now(_event())) is False

    def test_publish_now_without_bus(self) -> None:
        publisher = OutboxPublisher(InMemoryOutboxRepository())
        assert asyncio.run(publisher.publish_now(_event())) is False


# ---------------------------------------------------------------------------
# OutboxDispatcher – delivery
# ---------------------------------------------------------------------------


class TestDispatcherDelivery:
    def test_publishes_pending_records(self) -> None:
        w = World()
        w.recording_handler()

        async def run() -> int:
            await w.publisher.enqueue(_event("a"))
            await w.publisher.enqueue(_event("b"))
            return await w.dispatcher.process_batch()

        assert asyncio.run(run()) == 2
        assert [e.aggregate_id for e in w.delivered] == ["a", "b"]
        assert all(r.status is OutboxStatus.PUBLISHED for r in w.repo.all_records())
        assert all(r.processed_at == w.clock.now() for r in w.repo.all_records())

    def test_delivered_event_carries_record_identity(self) -> None:
        w = World()
        w.recording_handler()

        async def run() -> str:
            record = await w.publisher.enqueue(_event(correlation_id="corr-1"))
            await w.dispatcher.process_batch()
            return record.id

        record_id = asyncio.run(run())
        [event] = w.delivered
        assert event.event_id == record_id
        assert event.correlation_id == "corr-1"
        assert event.payload == {"decision": "APPROVED"}

    def test_batch_size_respected(self) -> None:
        w = World(batch_size=2)
        w.recording_handler()

        async def run() -> None:
            for i in range(5):
                await w.publisher.enqueue(_event(f"apr-{i}"))
            assert await w.dispatcher.process_batch() == 2
            assert await w.dispatcher.process_batch() == 2
            assert await w.dispatcher.process_batch() == 1
            assert await w.dispatcher.process_batch() == 0

        asyncio.run(run())

    def test_bookkeeping_failure_does_not_stop_batch(self, caplog: pytest.LogCaptureFixture) -> None:
        w = World()
        w.recording_handler()
        broken: list[str] = []
        mark_published = w.repo.mark_published

        async def flaky_mark_published(record_id: str) -> None:
            if not broken:
                broken.append(record_id)
                raise ConnectionError("connection reset")
            await mark_published(record_id)

        w.repo.mark_published = flaky_mark_published  # type: ignore[method-assign]

        async def run() -> int:
            for i in range(3):
                await w.publisher.enqueue(_event(f"apr-{i}"))
            return await w.dispatcher.process_batch()

        with caplog.at_level(logging.ERROR):
            assert asyncio.run(run()) == 2

        statuses = {r.id: r.status for r in w.repo.all_records()}
        assert statuses.pop(broken[0]) is OutboxStatus.PROCESSING
        assert set(statuses.values()) == {OutboxStatus.PUBLISHED}
        assert len(w.delivered) == 3
        assert any("outbox.bookkeeping_failed" in r.getMessage() for r in caplog.records)
        assert not w.dispatcher.is_processing

    def test_failure_schedules_retry_with_backoff(self) -> None:
        w = World()
        w.failing_handler("downstream rejected")

        async def run() -> str:
            record = await w.publisher.enqueue(_event())
            assert await w.dispatcher.process_batch() == 0
            return record.id

        record_id = asyncio.run(run())
        stored = asyncio.run(w.repo.get(record_id))
        assert stored is not None
        assert stored.status is OutboxStatus.PENDING
        assert stored.retry_count == 1
        assert stored.scheduled_at == w.clock.now() + timedelta(minutes=2)
        assert "downstream rejected" in (stored.last_error or "")

    def test_not_due_records_are_not_claimed(self) -> None:
        w = World()
        w.failing_handler()

        async def run() -> None:
            await w.publisher.enqueue(_event())
            await w.dispatcher.process_batch()
            assert await w.repo.claim_pending() == []
            w.clock.advance(minutes=2)
            assert len(await w.repo.claim_pending()) == 1

        asyncio.run(run())

    def test_disabled_worker_never_claims(self) -> None:
        w = World(worker_enabled=False)
        w.recording_handler()

        async def run() -> int:
            await w.publisher.enqueue(_event())
            return await w.dispatcher.process_batch()

        assert asyncio.run(run()) == 0
        assert w.repo.all_records()[0].status is OutboxStatus.PENDING

    def test_overlapping_run_skipped(self) -> None:
        w = World()

        async def run() -> tuple[int, int]:
            release = asyncio.Event()

            async def slow(event: DomainEvent) -> None:
                await release.wait()

            w.bus.register_handler("approval.decided", slow)
            await w.publisher.enqueue(_event())
            first = asyncio.create_task(w.dispatcher.process_batch())
            await asyncio.sleep(0)
            assert w.dispatcher.is_processing
            second = await w.dispatcher.process_batch()
            release.set()
            return await first, second

        assert asyncio.run(run()) == (1, 0)

    def test_concurrent_dispatchers_deliver_once(self) -> None:
        w = World()
        w.recording_handler()
        other = OutboxDispatcher(w.repo, w.bus, w.settings)

        async def run() -> None:
            for i in range(20):
                await w.publisher.enqueue(_event(f"apr-{i}"))
            await asyncio.gather(*(d.process_batch() for d in (w.dispatcher, other, w.dispatcher, other)))

        asyncio.run(run())
        assert sorted(e.aggregate_id for e in w.delivered) == sorted(f"apr-{i}" for i in range(20))


# ---------------------------------------------------------------------------
# OutboxDispatcher – dead letters and maintenance
# ---------------------------------------------------------------------------


class TestDeadLetterScenario:
    def test_approval_decided_dead_letter_then_reprocess(self, caplog: pytest.LogCaptureFixture) -> None:
        w = World(max_retries=5)
        w.failing_handler()

        async def run() -> str:
            record = await w.publisher.enqueue(_event("apr-1"))
            for _ in range(5):
                w.clock.advance(hours=1)
                await w.dispatcher.process_batch()
            return record.id

        with caplog.at_level(logging.ERROR):
            record_id = asyncio.run(run())

        dead = asyncio.run(w.repo.get(record_id))
        assert dead is not None
        assert dead.status is OutboxStatus.DEAD
        assert dead.retry_count == 5
        assert any("outbox.dead_letter" in r.getMessage() for r in caplog.records)
        assert [r.id for r in asyncio.run(w.repo.list_dead_letters())] == [record_id]

        asyncio.run(w.repo.reprocess(record_id))
        revived = asyncio.run(w.repo.get(record_id))
        assert revived is not None
        assert revived.status is OutboxStatus.PENDING
        assert revived.retry_count == 0
        assert revived.last_error is None
        assert [r.id for r in asyncio.run(w.repo.claim_pending())] == [record_id]

    def test_reprocess_requires_dead(self) -> None:
        w = World()
        record = asyncio.run(w.publisher.enqueue(_event()))
        with pytest.raises(OutboxStateError):
            asyncio.run(w.repo.reprocess(record.id))

    def test_reprocess_unknown_id(self) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(World().repo.reprocess("missing"))

    def test_dead_records_never_claimed(self) -> None:
        w = World(max_retries=1)
        w.failing_handler()

        async def run() -> None:
            await w.publisher.enqueue(_event())
            await w.dispatcher.process_batch()
            w.clock.advance(days=1)
            assert await w.repo.claim_pending() == []

        asyncio.run(run())


class TestMaintenance:
    def test_reclaim_stale_processing(self) -> None:
        w = World(processing_timeout_seconds=300)
        w.recording_handler()

        async def run() -> None:
            await w.publisher.enqueue(_event())
            [claimed] = await w.repo.claim_pending()
            # crash: never marked published
            w.clock.advance(seconds=299)
            assert await w.dispatcher.reclaim_stale() == 0
            w.clock.advance(seconds=1)
            assert await w.dispatcher.reclaim_stale() == 1
            assert await w.dispatcher.process_batch() == 1
            stored = await w.repo.get(claimed.id)
            assert stored is not None and stored.status is OutboxStatus.PUBLISHED

        asyncio.run(run())

    def test_purge_published(self) -> None:
        w = World(retention_days=14)
        w.recording_handler()

        async def run() -> None:
            await w.publisher.enqueue(_event("old"))
            await w.dispatcher.process_batch()
            w.clock.advance(days=15)
            await w.publisher.enqueue(_event("fresh"))
            await w.dispatcher.process_batch()
            assert await w.dispatcher.purge_published() == 1

        asyncio.run(run())
        assert [r.aggregate_id for r in w.repo.all_records()] == ["fresh"]

    def test_shutdown_waits_for_in_flight_batch(self) -> None:
        w = World()

        async def run() -> None:
            release = asyncio.Event()
            finished: list[str] = []

            async def slow(event: DomainEvent) -> None:
                await release.wait()
                finished.append(event.aggregate_id)

            w.bus.register_handler("approval.decided", slow)
            await w.publisher.enqueue(_event("a"))
            await w.publisher.enqueue(_event("b"))
            batch = asyncio.create_task(w.dispatcher.process_batch())
            await asyncio.sleep(0)

            stopping = asyncio.create_task(w.dispatcher.shutdown(timeout=1))
            await asyncio.sleep(0)
            assert not stopping.done()
            release.set()
            await stopping
            assert await batch == 2
            assert finished == ["a", "b"]
            assert w.dispatcher.is_shutting_down
            await w.publisher.enqueue(_event("c"))
            assert await w.dispatcher.process_batch() == 0

        asyncio.run(run())

    def test_jobs(self) -> None:
        w = World(poll_interval_seconds=2.5)
        idempotency = IdempotencyService(InMemoryIdempotencyStore())
        dispatcher = OutboxDispatcher(
            w.repo,
            w.bus,
            w.settings,
            idempotency=idempotency,
            idempotency_settings=IdempotencySettings(cleanup_interval_seconds=600),
        )

        jobs = {job.id: job for job in dispatcher.jobs()}

        assert set(jobs) == {DISPATCH_JOB_ID, RECLAIM_JOB_ID, PURGE_JOB_ID, IDEMPOTENCY_CLEANUP_JOB_ID}
        assert jobs[DISPATCH_JOB_ID].interval_seconds == 2.5
        assert jobs[PURGE_JOB_ID].interval_seconds == 86400
        assert jobs[RECLAIM_JOB_ID].interval_seconds == 60
        assert jobs[IDEMPOTENCY_CLEANUP_JOB_ID].interval_seconds == 600

    def test_jobs_disabled_with_worker(self) -> None:
        jobs = World(worker_enabled=False).dispatcher.jobs()
        assert {job.id for job in jobs} == {DISPATCH_JOB_ID, RECLAIM_JOB_ID, PURGE_JOB_ID}
        assert not any(job.enabled for job in jobs)
