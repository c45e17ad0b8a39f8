"""Governador de envio — token bucket em dois níveis.

- Nível por observer (padrão 1/s) e nível global (padrão 30/s).
- Recarga contínua (acúmulo fracionário), sem reset por segundo de relógio:
  evita rajada-e-trava nas viradas de segundo.
- `priority=True` pula o nível por observer mas ainda consome do global
  (mensagens administrativas não ficam presas no limite de um usuário).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Acima disso, buckets cheios (ociosos) de observers são descartados
_MAX_IDLE_BUCKETS = 10_000

# Resíduo de ponto flutuante tratado como token inteiro
_TOKEN_EPSILON = 1e-9

# Espera mínima: abaixo disso clock() + wait == clock() em epochs grandes
_MIN_WAIT_SECONDS = 1e-6


class TokenBucket:
    """Token bucket assíncrono com recarga contínua.

    Args:
        rate: Permissões por segundo
        capacity: Máximo acumulado (rajada)
        clock: Relógio monotônico (injetável em testes)
        sleep: Função de espera (injetável em testes)
    """

    def __init__(
        self,
        rate: float,
        capacity: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            msg = "rate deve ser > 0"
            raise ValueError(msg)
        self._rate = rate
        self._capacity = max(1.0, float(capacity))
        self._clock = clock
        self._sleep = sleep
        self._tokens = self._capacity
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._updated_at = now

    @property
    def is_full(self) -> bool:
        self._refill()
        return self._tokens >= self._capacity

    def try_acquire(self) -> bool:
        """Consome uma permissão se disponível agora, sem esperar."""
        self._refill()
        if self._tokens >= 1.0 - _TOKEN_EPSILON:
            self._tokens = max(0.0, self._tokens - 1.0)
            return True
        return False

    async def acquire(self) -> None:
        """Suspende até haver permissão e a consome."""
        while True:
            async with self._lock:
                if self.try_acquire():
                    return
                wait = max((1.0 - self._tokens) / self._rate, _MIN_WAIT_SECONDS)
            await self._sleep(wait)


class OutboundRateGovernor:
    """Limitador de notificações por observer e global.

    Args:
        per_observer_rate: Permissões/s por observer
        global_rate: Permissões/s no total
        burst: Capacidade dos buckets
    """

    def __init__(
        self,
        per_observer_rate: float = 1.0,
        global_rate: float = 30.0,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._per_observer_rate = per_observer_rate
        self._burst = burst
        self._clock = clock
        self._sleep = sleep
        self._global = TokenBucket(global_rate, burst, clock=clock, sleep=sleep)
        self._observers: dict[str, TokenBucket] = {}

    def _bucket_for(self, observer_id: str) -> TokenBucket:
        bucket = self._observers.get(observer_id)
        if bucket is None:
            if len(self._observers) >= _MAX_IDLE_BUCKETS:
                self._prune_idle()
            bucket = TokenBucket(
                self._per_observer_rate,
                self._burst,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._observers[observer_id] = bucket
        return bucket

    def _prune_idle(self) -> None:
        idle = [key for key, bucket in self._observers.items() if bucket.is_full]
        for key in idle:
            del self._observers[key]
        logger.debug("rate_governor_pruned", extra={"pruned": len(idle)})

    async def acquire(self, observer_id: str, priority: bool = False) -> None:
        """Suspende até o envio para o observer ser permitido."""
        started_at = self._clock()
        if not priority:
            await self._bucket_for(str(observer_id)).acquire()
        await self._global.acquire()
        waited = self._clock() - started_at
        if waited > 1.0:
            logger.info(
                "rate_governor_throttled",
                extra={"waited_seconds": round(waited, 3), "priority": priority},
            )

    def tracked_observers(self) -> int:
        """Quantidade de buckets por observer em memória."""
        return len(self._observers)
