"""Registro de métricas via structured logging.

As métricas são registradas como logs estruturados e agregadas
posteriormente (BigQuery, CloudWatch Insights, etc.).

Métricas suportadas:
- Latência: tempo de execução por componente/operação
- Decisão: contador de resultados por observer (notified/rejected/...)
- Fila: profundidade da fila de ingestão
- Cache: snapshot de estatísticas de uma classe de cache

Uso:
    from app.observability.metrics import record_latency, record_decision

    start = time.perf_counter()
    # ... operação ...
    record_latency("pipeline", "process_bundle", (time.perf_counter() - start) * 1000)
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def record_latency(
    component: str,
    operation: str,
    latency_ms: float,
    correlation_id: str | None = None,
) -> None:
    """Registra latência de operação.

    Args:
        component: Nome do componente (ex: "pipeline", "decision_store")
        operation: Nome da operação (ex: "process_bundle", "upsert")
        latency_ms: Latência em milissegundos
        correlation_id: ID de correlação para rastreamento
    """
    logger.info(
        "metric_latency",
        extra={
            "metric_type": "latency",
            "component": component,
            "operation": operation,
            "latency_ms": round(latency_ms, 2),
            "correlation_id": correlation_id,
        },
    )


def record_decision(
    outcome: str,
    evaluated_items: int = 0,
    new_items: int = 0,
    correlation_id: str | None = None,
) -> None:
    """Registra resultado da avaliação de um observer.

    Args:
        outcome: notified | rejected | suppressed | failed
        evaluated_items: Itens de evidência passados ao predicado
        new_items: Itens novos segundo o diff incremental
        correlation_id: ID de correlação para rastreamento
    """
    logger.info(
        "metric_decision",
        extra={
            "metric_type": "decision",
            "outcome": outcome,
            "evaluated_items": evaluated_items,
            "new_items": new_items,
            "correlation_id": correlation_id,
        },
    )


def record_queue_depth(depth: int, capacity: int) -> None:
    """Registra profundidade da fila de ingestão."""
    logger.info(
        "metric_queue_depth",
        extra={
            "metric_type": "queue_depth",
            "depth": depth,
            "capacity": capacity,
            "utilization": round(depth / capacity, 3) if capacity else 0.0,
        },
    )


def record_cache_stats(stats: dict[str, Any]) -> None:
    """Registra snapshot de estatísticas de cache."""
    logger.info(
        "metric_cache",
        extra={"metric_type": "cache", **stats},
    )
