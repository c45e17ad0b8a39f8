"""Protocolo de auditoria de decisões (append-only, fire-and-forget)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class DecisionAuditStoreProtocol(ABC):
    """Contrato mínimo para registro de decisões."""

    @abstractmethod
    async def append(self, record: dict[str, Any]) -> None:
        """Registra uma decisão (sem dados sensíveis)."""
