"""Settings do governador de envio (rate limit de notificações).

Proteção contra flood nos sinks externos limitados por taxa.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class RateLimitSettings:
    """Configurações do governador de envio.

    Attributes:
        per_observer_rate: Permissões por segundo para cada observer
        global_rate: Permissões por segundo somando todos os observers
        burst: Capacidade dos buckets (1 = sem rajada)
    """

    per_observer_rate: float = 1.0
    global_rate: float = 30.0
    burst: int = 1

    def validate(self) -> list[str]:
        """Valida configurações de rate limit.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.per_observer_rate <= 0:
            errors.append("RATE_PER_OBSERVER deve ser > 0")

        if self.global_rate <= 0:
            errors.append("RATE_GLOBAL deve ser > 0")

        if self.burst < 1:
            errors.append("RATE_BURST deve ser >= 1")

        return errors


def _load_rate_limit_from_env() -> RateLimitSettings:
    """Carrega RateLimitSettings de variáveis de ambiente."""
    return RateLimitSettings(
        per_observer_rate=float(os.getenv("RATE_PER_OBSERVER", "1.0")),
        global_rate=float(os.getenv("RATE_GLOBAL", "30.0")),
        burst=int(os.getenv("RATE_BURST", "1")),
    )


@lru_cache(maxsize=1)
def get_rate_limit_settings() -> RateLimitSettings:
    """Retorna instância cacheada de RateLimitSettings."""
    return _load_rate_limit_from_env()
