"""Testes dos stores em memória (regra de upgrade, TTL, corrida)."""

from __future__ import annotations

import asyncio

import pytest

from app.domain.processing_record import DecisionStatus, ProcessingRecord
from app.domain.tracking import TrackingEntry
from app.infra.stores.memory_stores import (
    MemoryAuditStore,
    MemoryDecisionStore,
    MemoryTrackingStore,
)
from tests.fakes.fake_clock import FakeClock

ACCEPTED = DecisionStatus.ACCEPTED
REJECTED = DecisionStatus.REJECTED


def _record(status: DecisionStatus, at: float, **seen: float) -> ProcessingRecord:
    return ProcessingRecord("tokenX", "42", status, at, tuple(seen), dict(seen))


class TestMemoryDecisionStore:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        store = MemoryDecisionStore()
        assert await store.get("tokenX", "42") is None

    @pytest.mark.asyncio
    async def test_monotonic_upgrade_sequence(self) -> None:
        """Qualquer sequência de upserts com um aceito termina ACCEPTED."""
        store = MemoryDecisionStore()

        assert await store.upsert(_record(REJECTED, 1.0, chanA=0.0)) is True
        assert await store.upsert(_record(ACCEPTED, 2.0, chanB=1.5)) is True
        assert await store.upsert(_record(REJECTED, 3.0, chanC=2.5)) is False

        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is ACCEPTED
        assert stored.last_decision_time == 2.0
        assert stored.evidence_seen == ("chanA", "chanB", "chanC")

    @pytest.mark.asyncio
    async def test_ttl_asymmetry(self) -> None:
        clock = FakeClock(1000.0)
        store = MemoryDecisionStore(accepted_ttl=14 * 24 * 3600, rejected_ttl=3600, clock=clock)

        await store.upsert(_record(REJECTED, 1000.0, chanA=999.0))
        assert store.expires_at("tokenX", "42") == 1000.0 + 3600

        await store.upsert(_record(ACCEPTED, 1000.0, chanB=999.5))
        assert store.expires_at("tokenX", "42") == 1000.0 + 14 * 24 * 3600

    @pytest.mark.asyncio
    async def test_rejected_expires_after_one_hour(self) -> None:
        clock = FakeClock(0.0)
        store = MemoryDecisionStore(rejected_ttl=3600, clock=clock)

        await store.upsert(_record(REJECTED, 0.0, chanA=0.0))
        clock.advance(3599)
        assert await store.get("tokenX", "42") is not None
        clock.advance(1)
        assert await store.get("tokenX", "42") is None

    @pytest.mark.asyncio
    async def test_concurrent_upgrade_race_keeps_accepted(self) -> None:
        """Rejeição e aceite concorrentes: resultado final é ACCEPTED."""
        store = MemoryDecisionStore()
        await store.upsert(_record(REJECTED, 1.0, chanA=0.0))

        results = await asyncio.gather(
            store.upsert(_record(REJECTED, 5.0, chanA=0.0)),
            store.upsert(_record(ACCEPTED, 5.0, chanB=4.0)),
            store.upsert(_record(REJECTED, 6.0, chanC=5.5)),
        )

        stored = await store.get("tokenX", "42")
        assert stored is not None
        assert stored.status is ACCEPTED
        # Exatamente um upsert retornou True para o aceite; nenhum depois dele
        assert results[1] is True


class TestMemoryTrackingStore:
    @pytest.mark.asyncio
    async def test_save_get_and_retrack_resets_multiple(self) -> None:
        store = MemoryTrackingStore()
        await store.save(TrackingEntry("tokenX", "42", 100.0, last_notified_multiple=3), 60)

        await store.save(TrackingEntry("tokenX", "42", 250.0), 60)

        entry = await store.get("tokenX", "42")
        assert entry is not None
        assert entry.baseline_value == 250.0
        assert entry.last_notified_multiple == 0

    @pytest.mark.asyncio
    async def test_entries_expire(self) -> None:
        clock = FakeClock(0.0)
        store = MemoryTrackingStore(clock=clock)
        await store.save(TrackingEntry("tokenX", "42", 100.0), 10)

        clock.advance(10)

        assert await store.get("tokenX", "42") is None
        assert [entry async for entry in store.iter_entries()] == []

    @pytest.mark.asyncio
    async def test_update_multiple_keeps_expiry(self) -> None:
        clock = FakeClock(0.0)
        store = MemoryTrackingStore(clock=clock)
        await store.save(TrackingEntry("tokenX", "42", 100.0), 10)
        clock.advance(5)

        assert await store.update_multiple("tokenX", "42", 2) is True
        entry = await store.get("tokenX", "42")
        assert entry is not None
        assert entry.last_notified_multiple == 2

        clock.advance(5)
        assert await store.get("tokenX", "42") is None

    @pytest.mark.asyncio
    async def test_update_multiple_only_advances(self) -> None:
        store = MemoryTrackingStore()
        await store.save(TrackingEntry("tokenX", "42", 100.0), 60)

        results = await asyncio.gather(
            store.update_multiple("tokenX", "42", 2),
            store.update_multiple("tokenX", "42", 2),
        )

        assert sorted(results) == [False, True]
        assert await store.update_multiple("tokenX", "42", 1) is False
        assert await store.update_multiple("tokenX", "42", 3) is True

    @pytest.mark.asyncio
    async def test_update_multiple_missing_entry(self) -> None:
        store = MemoryTrackingStore()
        assert await store.update_multiple("tokenX", "42", 2) is False


class TestMemoryAuditStore:
    @pytest.mark.asyncio
    async def test_append_is_bounded(self) -> None:
        store = MemoryAuditStore(max_records=2)
        for index in range(3):
            await store.append({"index": index})
        assert store.get_records() == [{"index": 1}, {"index": 2}]
