"""Contratos dos colaboradores externos do core.

O core não implementa lógica de filtro nem entrega de mensagens:
apenas chama estes contratos.
"""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.domain.evidence import EvidenceItem


class FilterPredicate(Protocol):
    """Filtro configurado por observer.

    Função pura da evidência e da configuração do observer. Pode ser
    síncrona ou retornar awaitable.
    """

    def evaluate(
        self,
        subject_id: str,
        observer_id: str,
        evidence: Sequence[EvidenceItem],
    ) -> bool | Awaitable[bool]: ...


class NotificationSink(Protocol):
    """Destino das notificações (chamado só após aceite + rate governor)."""

    async def notify(
        self,
        observer_id: str,
        subject_id: str,
        context: dict[str, Any],
    ) -> None: ...


class ObserverDirectory(Protocol):
    """Enumeração completa de observers (primeira aparição de um subject)."""

    async def list_observers(self) -> list[str]: ...
