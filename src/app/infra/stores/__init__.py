"""Stores — implementações concretas de persistência.

Módulos disponíveis:
    - redis_decision_store: Store de decisões (upsert atômico via Lua)
    - redis_tracking_store: Store de tracking com TTL
    - memory_stores: Stores em memória para desenvolvimento/testes
"""

from __future__ import annotations

from app.infra.stores.memory_stores import (
    MemoryAuditStore,
    MemoryDecisionStore,
    MemoryTrackingStore,
)
from app.infra.stores.redis_decision_store import RedisDecisionStore
from app.infra.stores.redis_tracking_store import RedisTrackingStore

__all__ = [
    # Memory (dev/test)
    "MemoryAuditStore",
    "MemoryDecisionStore",
    "MemoryTrackingStore",
    # Redis
    "RedisDecisionStore",
    "RedisTrackingStore",
]
