"""Resultados do processamento de um bundle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BundleState(Enum):
    """Ciclo de vida de um bundle no pipeline."""

    QUEUED = "queued"
    DEQUEUED = "dequeued"
    EVALUATING = "evaluating"
    DECIDED = "decided"
    NOTIFIED = "notified"
    SUPPRESSED = "suppressed"


class ObserverOutcome(Enum):
    """Resultado da avaliação de um observer."""

    NOTIFIED = "notified"  # Aceito agora, notificação emitida
    REJECTED = "rejected"  # Predicado negou; registro com TTL curto
    SUPPRESSED = "suppressed"  # Já aceito, ou sem evidência nova
    FAILED = "failed"  # Erro recuperável; nova tentativa no próximo evento


@dataclass(slots=True)
class BundleOutcome:
    """Resultado agregado de um bundle."""

    subject_id: str
    state: BundleState = BundleState.QUEUED
    outcomes: dict[str, ObserverOutcome] = field(default_factory=dict)

    @property
    def notified(self) -> list[str]:
        """Observers notificados neste ciclo."""
        return sorted(
            observer_id
            for observer_id, outcome in self.outcomes.items()
            if outcome is ObserverOutcome.NOTIFIED
        )

    def finalize(self) -> None:
        """Fecha o ciclo: NOTIFIED se alguém foi notificado, senão SUPPRESSED."""
        self.state = BundleState.NOTIFIED if self.notified else BundleState.SUPPRESSED
