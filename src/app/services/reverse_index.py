"""Índice reverso subject → observers interessados.

Cache derivado do store de tracking, nunca fonte de verdade:
- `rebuild()` faz scan completo (O(N) entradas) e troca o mapa inteiro;
- `add()` mantém o índice incrementalmente após criar uma entrada;
- a construção é comutativa: qualquer ordem de `add` produz o mesmo estado.

Consistência eventual: um observer no índice sem entrada no store é
inofensivo (a leitura do store não encontra registro e segue o fluxo normal).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.protocols.tracking_store import TrackingStoreProtocol

logger = logging.getLogger(__name__)


class ReverseIndexCache:
    """Mapa em memória subject_id → set(observer_id), protegido por lock."""

    def __init__(self, tracking_store: TrackingStoreProtocol) -> None:
        self._tracking_store = tracking_store
        self._index: defaultdict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()
        # Adds recebidos durante um rebuild em andamento
        self._pending: list[tuple[str, str]] | None = None

    async def rebuild(self) -> int:
        """Reconstrói o índice do zero a partir do store de tracking.

        Returns:
            Quantidade de entradas indexadas.
        """
        started_at = time.perf_counter()
        with self._lock:
            self._pending = []

        fresh: defaultdict[str, set[str]] = defaultdict(set)
        count = 0
        try:
            async for entry in self._tracking_store.iter_entries():
                fresh[entry.subject_id].add(entry.observer_id)
                count += 1
        except BaseException:
            with self._lock:
                self._pending = None
            raise

        with self._lock:
            for subject_id, observer_id in self._pending or []:
                fresh[subject_id].add(observer_id)
            self._pending = None
            self._index = fresh

        logger.info(
            "reverse_index_rebuilt",
            extra={
                "entries": count,
                "subjects": len(fresh),
                "latency_ms": round((time.perf_counter() - started_at) * 1000, 2),
            },
        )
        return count

    def add(self, subject_id: str, observer_id: str) -> None:
        """Registra interesse do observer no subject."""
        with self._lock:
            self._index[subject_id].add(observer_id)
            if self._pending is not None:
                self._pending.append((subject_id, observer_id))

    def lookup(self, subject_id: str) -> frozenset[str]:
        """Observers interessados (vazio para subject desconhecido)."""
        with self._lock:
            observers = self._index.get(subject_id)
            return frozenset(observers) if observers else frozenset()

    def size(self) -> int:
        """Total de pares (subject, observer) indexados."""
        with self._lock:
            return sum(len(observers) for observers in self._index.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._index)
