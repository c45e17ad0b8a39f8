"""Gateway de consultas externas lentas.

Segundo limitador de concorrência, independente do limitador de avaliação:
consultas lentas (lista completa de observers, metadados de fontes) passam
por semáforo próprio, timeout por chamada e cache em camadas.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from utils.errors import LookupTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

    from app.infra.cache.layered_cache import LayeredCache

logger = logging.getLogger(__name__)


class LookupGateway:
    """Executa loaders lentos com cache, limite de concorrência e timeout.

    Args:
        cache: Cache da classe "lookup"
        max_concurrent: Consultas simultâneas permitidas
        timeout_seconds: Timeout por consulta
    """

    def __init__(
        self,
        cache: LayeredCache,
        max_concurrent: int = 10,
        timeout_seconds: float = 8.0,
    ) -> None:
        self._cache = cache
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._timeout = timeout_seconds

    async def fetch(
        self,
        key: Hashable,
        loader: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        """Retorna valor do cache ou executa o loader sob limite.

        Raises:
            LookupTimeoutError: Se o loader exceder o timeout.
        """
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        async with self._semaphore:
            # Outra corrotina pode ter preenchido enquanto aguardávamos vaga
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            started_at = time.perf_counter()
            try:
                value = await asyncio.wait_for(loader(), timeout=self._timeout)
            except TimeoutError as exc:
                logger.warning(
                    "lookup_timeout",
                    extra={"lookup": str(key), "timeout_seconds": self._timeout},
                )
                raise LookupTimeoutError(f"Timeout na consulta {key}") from exc

        logger.debug(
            "lookup_loaded",
            extra={
                "lookup": str(key),
                "latency_ms": round((time.perf_counter() - started_at) * 1000, 2),
            },
        )
        if value is not None:
            self._cache.set(key, value, ttl)
        return value
