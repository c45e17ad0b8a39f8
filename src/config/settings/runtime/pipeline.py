"""Settings do pipeline de ingestão.

Fila limitada (backpressure), pool de workers e os dois limitadores
de concorrência independentes (avaliação por observer e consultas lentas).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

QueueFullMode = Literal["reject", "block"]


@dataclass(frozen=True)
class PipelineSettings:
    """Configurações do pipeline de ingestão.

    Attributes:
        queue_capacity: Capacidade máxima da fila de bundles
        queue_full_mode: reject = falha imediata; block = aguarda vaga
        enqueue_timeout_seconds: Espera máxima por vaga no modo block
        worker_count: Quantidade de workers drenando a fila
        max_concurrent_evaluations: Avaliações de observer simultâneas
        max_concurrent_lookups: Consultas externas lentas simultâneas
        lookup_timeout_seconds: Timeout por consulta externa
        evaluation_timeout_seconds: Timeout do predicado de filtro
    """

    queue_capacity: int = 10_000
    queue_full_mode: QueueFullMode = "reject"
    enqueue_timeout_seconds: float = 5.0
    worker_count: int = 4
    max_concurrent_evaluations: int = 5
    max_concurrent_lookups: int = 10
    lookup_timeout_seconds: float = 8.0
    evaluation_timeout_seconds: float = 5.0

    def validate(self) -> list[str]:
        """Valida configurações do pipeline.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.queue_capacity < 1:
            errors.append("QUEUE_CAPACITY deve ser >= 1")

        if self.queue_full_mode not in ("reject", "block"):
            errors.append(f"QUEUE_FULL_MODE inválido: {self.queue_full_mode}")

        if self.worker_count < 1:
            errors.append("WORKER_COUNT deve ser >= 1")

        if self.max_concurrent_evaluations < 1:
            errors.append("MAX_CONCURRENT_EVALUATIONS deve ser >= 1")

        if self.max_concurrent_lookups < 1:
            errors.append("MAX_CONCURRENT_LOOKUPS deve ser >= 1")

        if min(
            self.enqueue_timeout_seconds,
            self.lookup_timeout_seconds,
            self.evaluation_timeout_seconds,
        ) <= 0:
            errors.append("Timeouts do pipeline devem ser > 0")

        return errors


def _load_pipeline_from_env() -> PipelineSettings:
    """Carrega PipelineSettings de variáveis de ambiente."""
    mode: QueueFullMode = (
        "block" if os.getenv("QUEUE_FULL_MODE", "reject").lower() == "block" else "reject"
    )
    return PipelineSettings(
        queue_capacity=int(os.getenv("QUEUE_CAPACITY", "10000")),
        queue_full_mode=mode,
        enqueue_timeout_seconds=float(os.getenv("ENQUEUE_TIMEOUT_SECONDS", "5.0")),
        worker_count=int(os.getenv("WORKER_COUNT", "4")),
        max_concurrent_evaluations=int(os.getenv("MAX_CONCURRENT_EVALUATIONS", "5")),
        max_concurrent_lookups=int(os.getenv("MAX_CONCURRENT_LOOKUPS", "10")),
        lookup_timeout_seconds=float(os.getenv("LOOKUP_TIMEOUT_SECONDS", "8.0")),
        evaluation_timeout_seconds=float(os.getenv("EVALUATION_TIMEOUT_SECONDS", "5.0")),
    )


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """Retorna instância cacheada de PipelineSettings."""
    return _load_pipeline_from_env()
