"""Store de decisões em camadas: cache LRU/TTL → backing store → fallback.

- Leitura: cache em processo primeiro; miss vai ao backing store com
  timeout; falha/timeout do backing store cai no fallback em processo
  (best effort) e, sem fallback, é tratada como miss.
- Escrita: sempre no backing store (única garantia de atomicidade do
  upgrade). Falha é propagada como erro recuperável; o pipeline tenta de
  novo no próximo evento do subject. Sucesso invalida a chave no cache.

O fallback não sobrevive a reinícios e não substitui a durabilidade do
backing store.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from app.protocols.decision_store import DecisionStoreProtocol
from config.logging import log_fallback
from utils.errors import InfrastructureError, StoreTimeoutError

if TYPE_CHECKING:
    from app.domain.processing_record import ProcessingRecord
    from app.infra.cache.layered_cache import LayeredCache

logger = logging.getLogger(__name__)


class CachedDecisionStore(DecisionStoreProtocol):
    """Decorator de `DecisionStoreProtocol` com cache e fallback.

    Args:
        backing: Store durável (Redis em produção)
        cache: Cache de leitura (classe "decision")
        fallback: Cache de degradação (classe "fallback"), opcional
        timeout_seconds: Timeout por chamada ao backing store
    """

    def __init__(
        self,
        backing: DecisionStoreProtocol,
        cache: LayeredCache,
        fallback: LayeredCache | None = None,
        timeout_seconds: float = 2.0,
    ) -> None:
        self._backing = backing
        self._cache = cache
        self._fallback = fallback
        self._timeout = timeout_seconds

    async def get(self, subject_id: str, observer_id: str) -> ProcessingRecord | None:
        key = (subject_id, observer_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        started_at = time.perf_counter()
        try:
            record = await asyncio.wait_for(
                self._backing.get(subject_id, observer_id),
                timeout=self._timeout,
            )
        except (TimeoutError, InfrastructureError) as exc:
            elapsed_ms = round((time.perf_counter() - started_at) * 1000, 2)
            reason = "timeout" if isinstance(exc, TimeoutError) else type(exc).__name__
            log_fallback(logger, "decision_store_read", reason=reason, elapsed_ms=elapsed_ms)
            if self._fallback is None:
                return None
            return self._fallback.get(key)

        if record is not None:
            self._cache.set(key, record)
            if self._fallback is not None:
                self._fallback.set(key, record)
        return record

    async def upsert(self, record: ProcessingRecord) -> bool:
        key = (record.subject_id, record.observer_id)
        try:
            written = await asyncio.wait_for(
                self._backing.upsert(record),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise StoreTimeoutError("Timeout ao gravar decisão") from exc
        finally:
            # Leitura seguinte vai ao backing store (estado mesclado lá)
            self._cache.delete(key)

        if self._fallback is not None and (written or record.is_accepted):
            self._fallback.set(key, record)
        return written
