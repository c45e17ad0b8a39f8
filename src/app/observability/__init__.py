"""Observabilidade — logs estruturados e métricas.

Re-exporta funções de correlation_id e métricas para uso em toda a aplicação.

Uso:
    from app.observability import get_correlation_id, set_correlation_id
    from app.observability import record_latency, record_decision
"""

from app.observability.correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from app.observability.metrics import (
    record_cache_stats,
    record_decision,
    record_latency,
    record_queue_depth,
)

__all__ = [
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "record_cache_stats",
    "record_decision",
    "record_latency",
    "record_queue_depth",
    "reset_correlation_id",
    "set_correlation_id",
]
