"""TrackingEntry — interesse de um observer na variação de valor de um subject.

Uma entrada ativa por par (subject, observer); re-tracking sobrescreve o
baseline e zera o último múltiplo notificado.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any


def tracking_map_key(subject_id: str, observer_id: str) -> str:
    """Chave composta subject:observer (formato persistido)."""
    return f"{subject_id}:{observer_id}"


@dataclass(frozen=True, slots=True)
class TrackingEntry:
    """Entrada de tracking.

    Atributos:
        subject_id: Subject acompanhado
        observer_id: Observer interessado
        baseline_value: Valor no momento em que o tracking começou
        last_notified_multiple: Último múltiplo do baseline já notificado
        created_at: Epoch de criação
    """

    subject_id: str
    observer_id: str
    baseline_value: float
    last_notified_multiple: int = 0
    created_at: float = field(default_factory=time.time)

    @property
    def map_key(self) -> str:
        return tracking_map_key(self.subject_id, self.observer_id)

    def current_multiple(self, value: float) -> float:
        """Razão entre valor atual e baseline (0 para baseline inválido)."""
        if self.baseline_value <= 0:
            return 0.0
        return value / self.baseline_value

    def milestone_for(self, value: float) -> int:
        """Maior múltiplo inteiro do baseline atingido pelo valor."""
        return math.floor(self.current_multiple(value))

    def to_dict(self) -> dict[str, Any]:
        """Serializa no formato persistido."""
        return {
            "source_observer_map_key": self.map_key,
            "subject_id": self.subject_id,
            "observer_id": self.observer_id,
            "baseline_value": self.baseline_value,
            "last_notified_multiple": self.last_notified_multiple,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackingEntry:
        """Deserializa do formato persistido.

        Entradas antigas sem subject_id/observer_id explícitos são
        reconstruídas a partir da chave composta.
        """
        subject_id = data.get("subject_id")
        observer_id = data.get("observer_id")
        if subject_id is None or observer_id is None:
            subject_id, _, observer_id = str(data["source_observer_map_key"]).rpartition(":")
        return cls(
            subject_id=str(subject_id),
            observer_id=str(observer_id),
            baseline_value=float(data.get("baseline_value", 0.0)),
            last_notified_multiple=int(data.get("last_notified_multiple", 0)),
            created_at=float(data.get("created_at", 0.0)),
        )
