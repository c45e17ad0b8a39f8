"""Settings das classes de cache em processo.

Cada classe (decisões, consultas lentas, fallback) tem capacidade e TTL próprios.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class CacheSettings:
    """Configurações dos caches em camadas.

    Attributes:
        decision_capacity: Entradas máximas do cache de decisões
        decision_ttl_seconds: TTL do cache de decisões
        lookup_capacity: Entradas máximas do cache de consultas lentas
        lookup_ttl_seconds: TTL do cache de consultas lentas
        fallback_capacity: Entradas máximas do fallback (store indisponível)
        fallback_ttl_seconds: TTL do fallback
        sweep_interval_seconds: Intervalo da varredura de expirados
    """

    decision_capacity: int = 5000
    decision_ttl_seconds: float = 60.0
    lookup_capacity: int = 1000
    lookup_ttl_seconds: float = 300.0
    fallback_capacity: int = 5000
    fallback_ttl_seconds: float = 3600.0
    sweep_interval_seconds: float = 120.0

    def validate(self) -> list[str]:
        """Valida configurações de cache."""
        errors: list[str] = []

        if min(self.decision_capacity, self.lookup_capacity, self.fallback_capacity) < 1:
            errors.append("*_CACHE_CAPACITY deve ser >= 1")

        if min(
            self.decision_ttl_seconds,
            self.lookup_ttl_seconds,
            self.fallback_ttl_seconds,
        ) <= 0:
            errors.append("*_CACHE_TTL_SECONDS deve ser > 0")

        if self.sweep_interval_seconds <= 0:
            errors.append("CACHE_SWEEP_INTERVAL_SECONDS deve ser > 0")

        return errors


def _load_cache_from_env() -> CacheSettings:
    """Carrega CacheSettings de variáveis de ambiente."""
    return CacheSettings(
        decision_capacity=int(os.getenv("DECISION_CACHE_CAPACITY", "5000")),
        decision_ttl_seconds=float(os.getenv("DECISION_CACHE_TTL_SECONDS", "60")),
        lookup_capacity=int(os.getenv("LOOKUP_CACHE_CAPACITY", "1000")),
        lookup_ttl_seconds=float(os.getenv("LOOKUP_CACHE_TTL_SECONDS", "300")),
        fallback_capacity=int(os.getenv("FALLBACK_CACHE_CAPACITY", "5000")),
        fallback_ttl_seconds=float(os.getenv("FALLBACK_CACHE_TTL_SECONDS", "3600")),
        sweep_interval_seconds=float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "120")),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """Retorna instância cacheada de CacheSettings."""
    return _load_cache_from_env()
