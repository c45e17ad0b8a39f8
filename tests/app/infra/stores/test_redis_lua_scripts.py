"""Scripts Lua dos stores Redis executados de verdade (fakeredis + lupa)."""

from __future__ import annotations

import asyncio
import json

import pytest

pytest.importorskip("lupa")

from fakeredis import FakeAsyncRedis, FakeServer  # noqa: E402

from app.domain.processing_record import DecisionStatus, ProcessingRecord  # noqa: E402
from app.domain.tracking import TrackingEntry  # noqa: E402
from app.infra.stores.redis_decision_store import RedisDecisionStore  # noqa: E402
from app.infra.stores.redis_tracking_store import RedisTrackingStore  # noqa: E402
from app.services.rate_governor import OutboundRateGovernor  # noqa: E402
from app.services.reverse_index import ReverseIndexCache  # noqa: E402
from app.services.tracking_service import TrackingService  # noqa: E402
from tests.fakes.fake_clock import FakeClock  # noqa: E402
from tests.fakes.fake_collaborators import RecordingSink  # noqa: E402

ACCEPTED = DecisionStatus.ACCEPTED
REJECTED = DecisionStatus.REJECTED
KEY = "decision:tokenX:42"


def _client() -> FakeAsyncRedis:
    return FakeAsyncRedis(server=FakeServer())


def _record(status: DecisionStatus, at: float, **seen: float) -> ProcessingRecord:
    return ProcessingRecord("tokenX", "42", status, at, tuple(seen), dict(seen))


def _with_latency(client: FakeAsyncRedis, seconds: float = 0.01) -> None:
    """Simula ida e volta de rede nas leituras simples."""
    original_get = client.get

    async def slow_get(*args, **kwargs):
        await asyncio.sleep(seconds)
        return await original_get(*args, **kwargs)

    client.get = slow_get


class TestDecisionUpsertScript:
    @pytest.mark.asyncio
    async def test_rejected_then_upgrade_with_ttl_per_status(self) -> None:
        client = _client()
        store = RedisDecisionStore(client, accepted_ttl=1_209_600, rejected_ttl=3600)

        assert await store.upsert(_record(REJECTED, 1.0, chanA=0.0)) is True
        assert 3590 <= await client.ttl(KEY) <= 3600

        assert await store.upsert(_record(ACCEPTED, 601.0, chanB=600.0)) is True
        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is ACCEPTED
        assert stored.last_decision_time == 601.0
        assert stored.evidence_seen == ("chanA", "chanB")
        assert stored.evidence_seen_at == {"chanA": 0.0, "chanB": 600.0}
        assert await client.ttl(KEY) > 3600

    @pytest.mark.asyncio
    async def test_rejected_refresh_keeps_short_ttl(self) -> None:
        client = _client()
        store = RedisDecisionStore(client, accepted_ttl=1_209_600, rejected_ttl=3600)
        await store.upsert(_record(REJECTED, 1.0, chanA=0.0))

        assert await store.upsert(_record(REJECTED, 50.0, chanA=40.0)) is True

        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is REJECTED
        assert stored.last_decision_time == 50.0
        assert stored.evidence_seen_at == {"chanA": 40.0}
        assert await client.ttl(KEY) <= 3600

    @pytest.mark.asyncio
    async def test_accepted_never_regresses_but_merges_evidence(self) -> None:
        client = _client()
        store = RedisDecisionStore(client)
        await store.upsert(_record(ACCEPTED, 601.0, chanA=0.0, chanB=600.0))

        assert await store.upsert(_record(REJECTED, 900.0, chanC=850.0)) is False

        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is ACCEPTED
        assert stored.last_decision_time == 601.0
        assert stored.evidence_seen == ("chanA", "chanB", "chanC")

    @pytest.mark.asyncio
    async def test_accepted_without_new_evidence_is_untouched(self) -> None:
        client = _client()
        store = RedisDecisionStore(client)
        await store.upsert(_record(ACCEPTED, 601.0, chanA=0.0))
        before = await client.get(KEY)

        assert await store.upsert(_record(ACCEPTED, 700.0, chanA=0.0)) is False
        assert await client.get(KEY) == before

    @pytest.mark.asyncio
    async def test_concurrent_writers_end_accepted(self) -> None:
        client = _client()
        store = RedisDecisionStore(client)
        await store.upsert(_record(REJECTED, 1.0, chanA=0.0))

        results = await asyncio.gather(
            store.upsert(_record(REJECTED, 5.0, chanA=0.0)),
            store.upsert(_record(ACCEPTED, 5.0, chanB=4.0)),
            store.upsert(_record(REJECTED, 6.0, chanC=5.5)),
            store.upsert(_record(ACCEPTED, 7.0, chanD=6.5)),
        )

        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is ACCEPTED
        assert set(stored.evidence_seen) == {"chanA", "chanB", "chanC", "chanD"}
        # Só o primeiro aceite a rodar escreve; o outro já encontra ACCEPTED
        assert [results[1], results[3]].count(True) == 1

    @pytest.mark.asyncio
    async def test_epoch_precision_survives_merge(self) -> None:
        client = _client()
        store = RedisDecisionStore(client)
        await store.upsert(_record(ACCEPTED, 1_700_000_100.0, chanA=1_700_000_000.123456))
        await store.upsert(_record(REJECTED, 1_700_000_200.0, chanB=1_700_000_150.987654))

        raw = json.loads(await client.get(KEY))
        assert raw["channels_called_at"] == {
            "chanA": 1_700_000_000.123,
            "chanB": 1_700_000_150.988,
        }


class TestTrackingCompareAndSet:
    @pytest.mark.asyncio
    async def test_concurrent_updates_only_one_wins(self) -> None:
        client = _client()
        store = RedisTrackingStore(client)
        await store.save(TrackingEntry("tokenX", "42", 100.0, created_at=1.0), 600)
        _with_latency(client)

        results = await asyncio.gather(
            store.update_multiple("tokenX", "42", 2),
            store.update_multiple("tokenX", "42", 2),
        )

        assert sorted(results) == [False, True]
        entry = await store.get("tokenX", "42")
        assert entry is not None
        assert entry.last_notified_multiple == 2
        assert 0 < await client.ttl("tracking:tokenX:42") <= 600

    @pytest.mark.asyncio
    async def test_higher_multiple_wins_after_conflict(self) -> None:
        client = _client()
        store = RedisTrackingStore(client)
        await store.save(TrackingEntry("tokenX", "42", 100.0, created_at=1.0), 600)
        _with_latency(client)

        results = await asyncio.gather(
            store.update_multiple("tokenX", "42", 2),
            store.update_multiple("tokenX", "42", 3),
        )

        entry = await store.get("tokenX", "42")
        assert entry is not None
        assert entry.last_notified_multiple == 3
        assert results[1] is True

    @pytest.mark.asyncio
    async def test_concurrent_values_notify_once_per_multiple(self) -> None:
        client = _client()
        store = RedisTrackingStore(client)
        clock = FakeClock()
        sink = RecordingSink()
        service = TrackingService(
            tracking_store=store,
            reverse_index=ReverseIndexCache(store),
            sink=sink,
            governor=OutboundRateGovernor(global_rate=1000.0, clock=clock, sleep=clock.sleep),
            ttl_seconds=600,
        )
        await service.track("tokenX", "42", 100.0)
        _with_latency(client)

        await asyncio.gather(
            service.observe_value("tokenX", 250.0),
            service.observe_value("tokenX", 220.0),
        )

        assert [context["multiple"] for _, _, context in sink.sent] == [2]
