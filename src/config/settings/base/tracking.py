"""Settings de tracking (interesse de observers em variação de valor)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings.base.decision import StoreBackend

if TYPE_CHECKING:
    from config.settings.base.core import BaseSettings


@dataclass(frozen=True)
class TrackingSettings:
    """Configurações de tracking.

    Attributes:
        backend: Backend do store de tracking (memory|redis)
        ttl_seconds: Retenção de cada entrada de tracking
        min_multiple: Primeiro múltiplo do baseline que gera notificação
    """

    backend: StoreBackend = "memory"
    ttl_seconds: int = 7 * 24 * 3600
    min_multiple: int = 2

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações de tracking."""
        errors: list[str] = []

        if self.backend not in ("memory", "redis"):
            errors.append(f"TRACKING_BACKEND inválido: {self.backend}")

        if self.backend == "memory" and not base.is_development:
            errors.append("TRACKING_BACKEND=memory proibido em staging/production")

        if self.backend == "redis" and not base.redis_url:
            errors.append("TRACKING_BACKEND=redis requer REDIS_URL configurado")

        if self.ttl_seconds <= 0:
            errors.append("TRACKING_TTL_SECONDS deve ser > 0")

        if self.min_multiple < 2:
            errors.append("TRACKING_MIN_MULTIPLE deve ser >= 2")

        return errors


def _load_tracking_from_env() -> TrackingSettings:
    """Carrega TrackingSettings de variáveis de ambiente."""
    backend: StoreBackend = (
        "redis" if os.getenv("TRACKING_BACKEND", "memory").lower() == "redis" else "memory"
    )
    return TrackingSettings(
        backend=backend,
        ttl_seconds=int(os.getenv("TRACKING_TTL_SECONDS", "604800")),
        min_multiple=int(os.getenv("TRACKING_MIN_MULTIPLE", "2")),
    )


@lru_cache(maxsize=1)
def get_tracking_settings() -> TrackingSettings:
    """Retorna instância cacheada de TrackingSettings."""
    return _load_tracking_from_env()
