"""Settings do store de decisões.

Retenção assimétrica (aceito longo, rejeitado curto), janela de lookback
e política de reavaliação.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from config.settings.base.core import BaseSettings

StoreBackend = Literal["memory", "redis"]
EvaluationPolicy = Literal["full", "delta"]


@dataclass(frozen=True)
class DecisionSettings:
    """Configurações do store de decisões.

    Attributes:
        backend: Backend do store (memory|redis)
        accepted_ttl_seconds: Retenção de registros aceitos (padrão 14 dias)
        rejected_ttl_seconds: Retenção de registros rejeitados (padrão 1h)
        lookback_seconds: Idade máxima de evidência considerada
        evaluation_policy: full = predicado recebe toda evidência atual;
            delta = apenas a evidência nova
        store_timeout_seconds: Timeout por chamada ao backing store
    """

    backend: StoreBackend = "memory"
    accepted_ttl_seconds: int = 14 * 24 * 3600
    rejected_ttl_seconds: int = 3600
    lookback_seconds: int = 24 * 3600
    evaluation_policy: EvaluationPolicy = "full"
    store_timeout_seconds: float = 2.0

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações do store de decisões.

        Args:
            base: BaseSettings para verificar ambiente.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.backend not in ("memory", "redis"):
            errors.append(f"DECISION_BACKEND inválido: {self.backend}")

        if self.backend == "memory" and not base.is_development:
            errors.append(
                "DECISION_BACKEND=memory proibido em staging/production. Use Redis."
            )

        if self.backend == "redis" and not base.redis_url:
            errors.append("DECISION_BACKEND=redis requer REDIS_URL configurado")

        if self.accepted_ttl_seconds <= 0 or self.rejected_ttl_seconds <= 0:
            errors.append("DECISION_*_TTL_SECONDS deve ser > 0")

        if self.rejected_ttl_seconds > self.accepted_ttl_seconds:
            errors.append(
                "DECISION_REJECTED_TTL_SECONDS não pode exceder DECISION_ACCEPTED_TTL_SECONDS"
            )

        if self.lookback_seconds <= 0:
            errors.append("LOOKBACK_HORIZON_SECONDS deve ser > 0")

        if self.evaluation_policy not in ("full", "delta"):
            errors.append(f"EVALUATION_POLICY inválida: {self.evaluation_policy}")

        if self.store_timeout_seconds <= 0:
            errors.append("STORE_TIMEOUT_SECONDS deve ser > 0")

        return errors


def _load_decision_from_env() -> DecisionSettings:
    """Carrega DecisionSettings de variáveis de ambiente."""
    backend_str = os.getenv("DECISION_BACKEND", "memory").lower()
    backend: StoreBackend = "redis" if backend_str == "redis" else "memory"
    policy_str = os.getenv("EVALUATION_POLICY", "full").lower()
    policy: EvaluationPolicy = "delta" if policy_str == "delta" else "full"
    return DecisionSettings(
        backend=backend,
        accepted_ttl_seconds=int(os.getenv("DECISION_ACCEPTED_TTL_SECONDS", "1209600")),
        rejected_ttl_seconds=int(os.getenv("DECISION_REJECTED_TTL_SECONDS", "3600")),
        lookback_seconds=int(os.getenv("LOOKBACK_HORIZON_SECONDS", "86400")),
        evaluation_policy=policy,
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "2.0")),
    )


@lru_cache(maxsize=1)
def get_decision_settings() -> DecisionSettings:
    """Retorna instância cacheada de DecisionSettings."""
    return _load_decision_from_env()
