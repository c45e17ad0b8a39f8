"""Stores em memória — apenas para desenvolvimento e testes.

ATENÇÃO: Não usar em staging/production. Sem persistência entre reinícios.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any

from app.domain.processing_record import DecisionStatus, ProcessingRecord, merge_records
from app.domain.tracking import TrackingEntry, tracking_map_key
from app.protocols.decision_audit_store import DecisionAuditStoreProtocol
from app.protocols.decision_store import DecisionStoreProtocol
from app.protocols.tracking_store import TrackingStoreProtocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable


class MemoryDecisionStore(DecisionStoreProtocol):
    """Store de decisões em memória — apenas para dev/test.

    Um único asyncio.Lock torna o check-then-write do upsert atômico.
    """

    def __init__(
        self,
        accepted_ttl: int = 14 * 24 * 3600,
        rejected_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store: dict[tuple[str, str], tuple[str, float]] = {}  # key -> (json, expires_at)
        self._accepted_ttl = accepted_ttl
        self._rejected_ttl = rejected_ttl
        self._clock = clock
        self._lock = asyncio.Lock()

    def _ttl_for(self, status: DecisionStatus) -> int:
        return self._accepted_ttl if status is DecisionStatus.ACCEPTED else self._rejected_ttl

    def _load_sync(self, subject_id: str, observer_id: str) -> ProcessingRecord | None:
        key = (subject_id, observer_id)
        entry = self._store.get(key)
        if entry is None:
            return None
        data, expires_at = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return ProcessingRecord.from_dict(subject_id, observer_id, json.loads(data))

    async def get(self, subject_id: str, observer_id: str) -> ProcessingRecord | None:
        """Carrega registro da memória."""
        return self._load_sync(subject_id, observer_id)

    async def upsert(self, record: ProcessingRecord) -> bool:
        """Escrita condicional atômica (upgrade monotônico)."""
        async with self._lock:
            stored = self._load_sync(record.subject_id, record.observer_id)
            to_write, written = merge_records(stored, record)
            if to_write is not None:
                expires_at = self._clock() + self._ttl_for(to_write.status)
                self._store[(record.subject_id, record.observer_id)] = (
                    json.dumps(to_write.to_dict()),
                    expires_at,
                )
            return written

    def expires_at(self, subject_id: str, observer_id: str) -> float | None:
        """Expiração absoluta do par (inspeção de TTL em testes)."""
        entry = self._store.get((subject_id, observer_id))
        return entry[1] if entry else None

    def __len__(self) -> int:
        return len(self._store)


class MemoryTrackingStore(TrackingStoreProtocol):
    """Store de tracking em memória — apenas para dev/test."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._store: dict[str, tuple[str, float]] = {}  # map_key -> (json, expires_at)
        self._clock = clock

    def _cleanup_expired(self) -> None:
        """Remove entradas expiradas."""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at <= now]
        for k in expired:
            del self._store[k]

    async def save(self, entry: TrackingEntry, ttl_seconds: int) -> None:
        """Salva entrada com TTL (sobrescreve baseline)."""
        self._store[entry.map_key] = (
            json.dumps(entry.to_dict()),
            self._clock() + ttl_seconds,
        )

    async def get(self, subject_id: str, observer_id: str) -> TrackingEntry | None:
        """Busca entrada ativa."""
        self._cleanup_expired()
        entry = self._store.get(tracking_map_key(subject_id, observer_id))
        if entry is None:
            return None
        return TrackingEntry.from_dict(json.loads(entry[0]))

    async def iter_entries(self) -> AsyncIterator[TrackingEntry]:
        """Itera entradas ativas (snapshot)."""
        self._cleanup_expired()
        for data, _ in list(self._store.values()):
            yield TrackingEntry.from_dict(json.loads(data))

    async def update_multiple(self, subject_id: str, observer_id: str, multiple: int) -> bool:
        """Avança o último múltiplo notificado mantendo a expiração."""
        self._cleanup_expired()
        key = tracking_map_key(subject_id, observer_id)
        entry = self._store.get(key)
        if entry is None:
            return False
        data = json.loads(entry[0])
        if int(data.get("last_notified_multiple", 0)) >= multiple:
            return False
        data["last_notified_multiple"] = multiple
        self._store[key] = (json.dumps(data), entry[1])
        return True


class MemoryAuditStore(DecisionAuditStoreProtocol):
    """Store de auditoria em memória — apenas para dev/test."""

    def __init__(self, max_records: int = 10000) -> None:
        self._records: list[dict[str, Any]] = []
        self._max_records = max_records

    async def append(self, record: dict[str, Any]) -> None:
        """Append de registro de auditoria."""
        self._records.append(record)
        # Limita tamanho para evitar memory leak em dev
        if len(self._records) > self._max_records:
            self._records = self._records[-self._max_records:]

    def get_records(self) -> list[dict[str, Any]]:
        """Retorna todos os registros (apenas para testes)."""
        return list(self._records)
