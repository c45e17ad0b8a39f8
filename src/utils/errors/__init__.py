"""Exceções utilitárias compartilhadas."""

from .exceptions import (
    InfrastructureError,
    LookupTimeoutError,
    MalformedEvidenceError,
    NotificationError,
    QueueFullError,
    RedisConnectionError,
    StoreTimeoutError,
)

__all__ = [
    "InfrastructureError",
    "LookupTimeoutError",
    "MalformedEvidenceError",
    "NotificationError",
    "QueueFullError",
    "RedisConnectionError",
    "StoreTimeoutError",
]
