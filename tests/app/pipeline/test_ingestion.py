"""Testes do pipeline de ingestão (cenário ponta a ponta e isolamento)."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.domain.evidence import EvidenceItem, SubjectBundle
from app.domain.outcomes import BundleState, ObserverOutcome
from app.domain.processing_record import DecisionStatus, ProcessingRecord
from app.infra.cache import LayeredCache
from app.infra.stores import MemoryAuditStore, MemoryDecisionStore, MemoryTrackingStore
from app.pipeline import BackgroundTasks, IngestionPipeline
from app.services import LookupGateway, MinimumSourcesPredicate, OutboundRateGovernor
from app.services.reverse_index import ReverseIndexCache
from config.settings import DecisionSettings, PipelineSettings
from tests.fakes.fake_clock import FakeClock
from tests.fakes.fake_collaborators import CallablePredicate, FixedDirectory, RecordingSink
from utils.errors import MalformedEvidenceError, QueueFullError, RedisConnectionError


def _build(
    *,
    predicate=None,
    observers: tuple[str, ...] = ("42",),
    policy: str = "full",
    queue_capacity: int = 100,
    queue_full_mode: str = "reject",
    evaluation_timeout: float = 5.0,
    sink: RecordingSink | None = None,
) -> SimpleNamespace:
    clock = FakeClock(1.0)
    governor_clock = FakeClock()
    sink = sink or RecordingSink()
    directory = FixedDirectory(list(observers))
    store = MemoryDecisionStore(clock=clock)
    index = ReverseIndexCache(MemoryTrackingStore())
    audit = MemoryAuditStore()
    pipeline = IngestionPipeline(
        decision_store=store,
        reverse_index=index,
        lookup_gateway=LookupGateway(LayeredCache("lookup", 10, 60)),
        observer_directory=directory,
        predicate=predicate or MinimumSourcesPredicate(2),
        sink=sink,
        governor=OutboundRateGovernor(
            global_rate=1000.0, clock=governor_clock, sleep=governor_clock.sleep
        ),
        pipeline_settings=PipelineSettings(
            queue_capacity=queue_capacity,
            queue_full_mode=queue_full_mode,
            enqueue_timeout_seconds=0.05,
            worker_count=2,
            evaluation_timeout_seconds=evaluation_timeout,
        ),
        decision_settings=DecisionSettings(evaluation_policy=policy),
        audit_store=audit,
        background=BackgroundTasks(),
        clock=clock,
    )
    return SimpleNamespace(
        pipeline=pipeline,
        clock=clock,
        sink=sink,
        directory=directory,
        store=store,
        index=index,
        audit=audit,
    )


def _bundle(*items: tuple[str, float], subject_id: str = "tokenX") -> SubjectBundle:
    return SubjectBundle(
        subject_id=subject_id,
        evidence=tuple(EvidenceItem(source, at) for source, at in items),
    )


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_reject_then_upgrade_then_suppress(self) -> None:
        ctx = _build()

        first = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))
        assert first.outcomes == {"42": ObserverOutcome.REJECTED}
        record = await ctx.store.get("tokenX", "42")
        assert record is not None
        assert record.evidence_seen == ("chanA",)

        ctx.clock.now = 601.0
        second = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanB", 600.0)))
        assert second.outcomes == {"42": ObserverOutcome.NOTIFIED}
        assert second.state is BundleState.NOTIFIED
        assert len(ctx.sink.sent) == 1
        observer_id, subject_id, context = ctx.sink.sent[0]
        assert (observer_id, subject_id) == ("42", "tokenX")
        assert [item["source_id"] for item in context["new_evidence"]] == ["chanB"]
        record = await ctx.store.get("tokenX", "42")
        assert record is not None
        assert record.is_accepted
        assert record.evidence_seen == ("chanA", "chanB")

        ctx.clock.now = 602.0
        third = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanB", 600.0)))
        assert third.outcomes == {"42": ObserverOutcome.SUPPRESSED}
        assert third.state is BundleState.SUPPRESSED
        assert len(ctx.sink.sent) == 1

    @pytest.mark.asyncio
    async def test_no_new_evidence_skips_predicate(self) -> None:
        predicate = CallablePredicate(lambda subject_id, observer_id, evidence: False)
        ctx = _build(predicate=predicate)

        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))
        ctx.clock.now = 30.0
        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.SUPPRESSED}
        assert len(predicate.calls) == 1

    @pytest.mark.asyncio
    async def test_first_evaluation_outside_horizon_is_suppressed(self) -> None:
        predicate = CallablePredicate(lambda subject_id, observer_id, evidence: True)
        ctx = _build(predicate=predicate)
        ctx.clock.now = 200_000.0

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.SUPPRESSED}
        assert predicate.calls == []


class TestEvaluationPolicy:
    @pytest.mark.asyncio
    async def test_full_policy_passes_all_evidence_in_horizon(self) -> None:
        predicate = CallablePredicate(lambda subject_id, observer_id, evidence: False)
        ctx = _build(predicate=predicate, policy="full")

        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))
        ctx.clock.now = 601.0
        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanB", 600.0)))

        evaluated = [item.source_id for item in predicate.calls[-1][2]]
        assert evaluated == ["chanA", "chanB"]

    @pytest.mark.asyncio
    async def test_delta_policy_passes_only_new_evidence(self) -> None:
        predicate = CallablePredicate(lambda subject_id, observer_id, evidence: False)
        ctx = _build(predicate=predicate, policy="delta")

        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))
        ctx.clock.now = 601.0
        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanB", 600.0)))

        evaluated = [item.source_id for item in predicate.calls[-1][2]]
        assert evaluated == ["chanB"]


class TestIsolation:
    @pytest.mark.asyncio
    async def test_predicate_exception_affects_only_its_observer(self) -> None:
        def evaluate(subject_id: str, observer_id: str, evidence) -> bool:
            if observer_id == "1":
                raise RuntimeError("filtro quebrado")
            return True

        ctx = _build(predicate=CallablePredicate(evaluate), observers=("1", "2"))

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"1": ObserverOutcome.FAILED, "2": ObserverOutcome.NOTIFIED}
        assert [observer for observer, _, _ in ctx.sink.sent] == ["2"]
        assert await ctx.store.get("tokenX", "1") is None

    @pytest.mark.asyncio
    async def test_async_predicate_timeout_fails_observer(self) -> None:
        class SlowPredicate:
            async def evaluate(self, subject_id, observer_id, evidence) -> bool:
                await asyncio.sleep(1)
                return True

        ctx = _build(predicate=SlowPredicate(), evaluation_timeout=0.01)

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.FAILED}
        assert ctx.sink.sent == []

    @pytest.mark.asyncio
    async def test_async_predicate_is_awaited(self) -> None:
        class AsyncPredicate:
            async def evaluate(self, subject_id, observer_id, evidence) -> bool:
                return True

        ctx = _build(predicate=AsyncPredicate())

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.NOTIFIED}

    @pytest.mark.asyncio
    async def test_store_failure_never_notifies(self) -> None:
        ctx = _build(predicate=CallablePredicate(lambda s, o, e: True))
        ctx.store.upsert = AsyncMock(side_effect=RedisConnectionError("down"))

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.FAILED}
        assert ctx.sink.sent == []

    @pytest.mark.asyncio
    async def test_sink_failure_keeps_decision(self) -> None:
        ctx = _build(
            predicate=CallablePredicate(lambda s, o, e: True),
            sink=RecordingSink(fail_for={"42"}),
        )

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {"42": ObserverOutcome.FAILED}
        record = await ctx.store.get("tokenX", "42")
        assert record is not None
        assert record.is_accepted

    @pytest.mark.asyncio
    async def test_duplicate_bundles_notify_once(self) -> None:
        ctx = _build(predicate=CallablePredicate(lambda s, o, e: True))
        bundle = _bundle(("chanA", 0.0))

        await asyncio.gather(*(ctx.pipeline.process_bundle(bundle) for _ in range(5)))

        assert len(ctx.sink.sent) == 1

    @pytest.mark.asyncio
    async def test_slow_predicate_loses_to_concurrent_accept(self) -> None:
        """Registro REJECTED lido antes de outro worker aceitar termina SUPPRESSED."""
        ctx = None

        class WaitsForAcceptPredicate:
            async def evaluate(self, subject_id, observer_id, evidence) -> bool:
                if "chanB" in {item.source_id for item in evidence}:
                    record = await ctx.store.get(subject_id, observer_id)
                    while record is None or not record.is_accepted:
                        await asyncio.sleep(0)
                        record = await ctx.store.get(subject_id, observer_id)
                return True

        ctx = _build(predicate=WaitsForAcceptPredicate())
        await ctx.store.upsert(
            ProcessingRecord(
                "tokenX", "42", DecisionStatus.REJECTED, 1.0, ("chanA",), {"chanA": 0.0}
            )
        )

        slow, fast = await asyncio.gather(
            ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanB", 5.0))),
            ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), ("chanC", 6.0))),
        )

        assert slow.outcomes == {"42": ObserverOutcome.SUPPRESSED}
        assert fast.outcomes == {"42": ObserverOutcome.NOTIFIED}
        assert len(ctx.sink.sent) == 1
        record = await ctx.store.get("tokenX", "42")
        assert record is not None
        assert record.is_accepted
        assert set(record.evidence_seen) == {"chanA", "chanB", "chanC"}


class TestObserverResolution:
    @pytest.mark.asyncio
    async def test_reverse_index_takes_precedence(self) -> None:
        ctx = _build(predicate=CallablePredicate(lambda s, o, e: False))
        ctx.index.add("tokenX", "7")

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert list(outcome.outcomes) == ["7"]
        assert ctx.directory.calls == 0

    @pytest.mark.asyncio
    async def test_directory_lookup_is_cached(self) -> None:
        ctx = _build(predicate=CallablePredicate(lambda s, o, e: False))

        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))
        await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0), subject_id="tokenY"))

        assert ctx.directory.calls == 1

    @pytest.mark.asyncio
    async def test_directory_failure_yields_no_observers(self) -> None:
        ctx = _build()
        ctx.directory.list_observers = AsyncMock(side_effect=RedisConnectionError("down"))

        outcome = await ctx.pipeline.process_bundle(_bundle(("chanA", 0.0)))

        assert outcome.outcomes == {}
        assert outcome.state is BundleState.SUPPRESSED


class TestBackpressure:
    @pytest.mark.asyncio
    async def test_reject_mode_signals_queue_full(self) -> None:
        ctx = _build(queue_capacity=1)

        await ctx.pipeline.enqueue(_bundle(("chanA", 0.0)))
        with pytest.raises(QueueFullError):
            await ctx.pipeline.enqueue(_bundle(("chanB", 0.0)))

        stats = ctx.pipeline.stats()
        assert stats["queue_depth"] == 1
        assert stats["rejected_enqueues"] == 1

    @pytest.mark.asyncio
    async def test_block_mode_times_out(self) -> None:
        ctx = _build(queue_capacity=1, queue_full_mode="block")

        await ctx.pipeline.enqueue(_bundle(("chanA", 0.0)))
        with pytest.raises(QueueFullError):
            await ctx.pipeline.enqueue(_bundle(("chanB", 0.0)))

    @pytest.mark.asyncio
    async def test_enqueue_payload_skips_malformed_items(self) -> None:
        ctx = _build()

        bundle = await ctx.pipeline.enqueue_payload(
            {
                "subject_id": "tokenX",
                "evidence": [{"source_id": "chanA", "observed_at": 0}, {"observed_at": 1}],
            }
        )

        assert bundle.skipped_items == 1
        assert ctx.pipeline.queue_depth == 1

    @pytest.mark.asyncio
    async def test_enqueue_payload_without_subject_raises(self) -> None:
        ctx = _build()
        with pytest.raises(MalformedEvidenceError):
            await ctx.pipeline.enqueue_payload({"evidence": []})
        assert ctx.pipeline.queue_depth == 0


class TestWorkers:
    @pytest.mark.asyncio
    async def test_workers_drain_queue_and_audit(self) -> None:
        ctx = _build(predicate=CallablePredicate(lambda s, o, e: True), observers=("1", "2"))
        await ctx.pipeline.start()
        assert ctx.pipeline.is_running

        await ctx.pipeline.enqueue(_bundle(("chanA", 0.0)))
        await ctx.pipeline.enqueue(_bundle(("chanA", 0.0), subject_id="tokenY"))
        await ctx.pipeline.stop(timeout_seconds=5.0)

        assert not ctx.pipeline.is_running
        assert len(ctx.sink.sent) == 4
        records = ctx.audit.get_records()
        assert len(records) == 4
        assert {record["event_type"] for record in records} == {"decision_recorded"}
        stats = ctx.pipeline.stats()
        assert stats["processed_bundles"] == 2
        assert stats["outcomes"] == {"notified": 4}
