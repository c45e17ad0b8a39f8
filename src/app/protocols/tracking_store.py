"""Protocolo do store de tracking (fonte de verdade do índice reverso)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from app.domain.tracking import TrackingEntry


class TrackingStoreProtocol(ABC):
    """Contrato assíncrono do store de tracking."""

    @abstractmethod
    async def save(self, entry: TrackingEntry, ttl_seconds: int) -> None:
        """Salva (ou sobrescreve) a entrada do par com TTL."""

    @abstractmethod
    async def get(self, subject_id: str, observer_id: str) -> TrackingEntry | None:
        """Busca a entrada ativa do par."""

    @abstractmethod
    def iter_entries(self) -> AsyncIterator[TrackingEntry]:
        """Itera todas as entradas ativas, em ordem arbitrária."""

    @abstractmethod
    async def update_multiple(
        self,
        subject_id: str,
        observer_id: str,
        multiple: int,
    ) -> bool:
        """Avança o último múltiplo notificado mantendo o TTL restante.

        Escrita condicional: só grava quando o múltiplo armazenado é menor.

        Returns:
            True apenas para quem efetivamente avançou o múltiplo.
        """
