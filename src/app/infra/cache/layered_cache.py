"""Cache em processo com TTL + LRU.

Camada de otimização na frente do store de decisões e de consultas lentas.
Nunca é fonte de verdade: todo valor aqui é reconstruível pelo backing
store ou pela chamada externa.

- Expiração preguiçosa no `get` e varredura periódica em background.
- Na capacidade máxima, inserir chave nova despeja a entrada acessada há
  mais tempo (empate: ordem de inserção).
- Thread-safe (lock por operação), seguro sob workers concorrentes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from app.observability import record_cache_stats

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(slots=True)
class CacheEntry:
    """Entrada do cache: valor, expiração e último acesso."""

    value: Any
    expires_at: float
    last_access_at: float


class LayeredCache:
    """Cache limitado por capacidade com TTL por entrada.

    Args:
        name: Classe do cache (aparece em logs/métricas)
        capacity: Entradas máximas
        default_ttl: TTL padrão em segundos
        clock: Relógio monotônico (injetável em testes)
    """

    def __init__(
        self,
        name: str,
        capacity: int,
        default_ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            msg = "capacity deve ser >= 1"
            raise ValueError(msg)
        self._name = name
        self._capacity = capacity
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Retorna valor não expirado ou `default`; hit renova recência."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if entry.expires_at <= now:
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return default
            entry.last_access_at = now
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Insere/sobrescreve valor; despeja o LRU se cheio e a chave for nova."""
        now = self._clock()
        expires_at = now + (self._default_ttl if ttl is None else ttl)
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._capacity:
                self._evict_one(now)
            self._entries[key] = CacheEntry(value, expires_at, now)

    def delete(self, key: Hashable) -> bool:
        """Remove a chave. Retorna True se existia."""
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        """Limpa todo o cache."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("layered_cache_cleared", extra={"cache": self._name, "items_cleared": count})

    def sweep(self) -> int:
        """Remove entradas expiradas. Retorna quantas foram removidas."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
        if expired:
            logger.debug(
                "layered_cache_swept",
                extra={"cache": self._name, "expired": len(expired)},
            )
        return len(expired)

    def _evict_one(self, now: float) -> None:
        # Expirados primeiro; sem expirados, o menos recente (início do OrderedDict)
        for key, entry in self._entries.items():
            if entry.expires_at <= now:
                del self._entries[key]
                self._expirations += 1
                return
        self._entries.popitem(last=False)
        self._evictions += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Checa presença sem alterar recência nem contadores."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and entry.expires_at > now

    def keys(self) -> list[Hashable]:
        """Chaves em ordem de recência (menos recente primeiro)."""
        with self._lock:
            return list(self._entries.keys())

    def stats(self) -> dict[str, int | str]:
        """Estatísticas do cache (debug/monitoramento)."""
        with self._lock:
            return {
                "cache": self._name,
                "size": len(self._entries),
                "capacity": self._capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    # ──────────────────────────────────────────────────────────────
    # Varredura em background
    # ──────────────────────────────────────────────────────────────

    def start_sweeper(self, interval_seconds: float) -> asyncio.Task[None]:
        """Agenda varredura periódica no loop atual (idempotente)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(
                self._sweep_loop(interval_seconds),
                name=f"cache-sweeper-{self._name}",
            )
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancela a varredura periódica."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()
            record_cache_stats(self.stats())
