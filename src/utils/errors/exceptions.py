"""Exceções de domínio para falhas recuperáveis de infraestrutura e ingestão."""

from __future__ import annotations


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class RedisConnectionError(InfrastructureError):
    """Falha de conexão/timeout ao acessar Redis."""


class StoreTimeoutError(InfrastructureError):
    """Chamada ao store de decisões excedeu o timeout configurado."""


class LookupTimeoutError(InfrastructureError):
    """Consulta externa lenta excedeu o timeout configurado."""


class NotificationError(InfrastructureError):
    """Falha ao entregar notificação ao sink externo."""


class QueueFullError(RuntimeError):
    """Fila de ingestão cheia (backpressure sinalizado ao produtor)."""


class MalformedEvidenceError(ValueError):
    """Item de evidência (ou bundle) sem campos obrigatórios."""
