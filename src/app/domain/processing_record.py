"""ProcessingRecord — decisão persistida por par (subject, observer).

Formato persistido (estável entre reinícios):
    {
        "status": "accepted" | "rejected",
        "timestamp": <epoch da última decisão>,
        "channels_checked": [<source_id>, ...],
        "channels_called_at": {<source_id>: <epoch>, ...}
    }

O TTL não faz parte do payload; fica a cargo do store.

Regra de escrita (upgrade monotônico):
- sem registro → escreve o candidato
- rejeitado + candidato aceito → upgrade
- rejeitado + candidato rejeitado → refresh (status/timestamp do candidato)
- aceito → status nunca regride; só a evidência é mesclada
Em todos os casos com registro existente a evidência é a união, com o
timestamp mais recente por fonte.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from app.domain.evidence import TIMESTAMP_DECIMALS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from app.domain.evidence import EvidenceItem


class DecisionStatus(Enum):
    """Status da decisão para um par (subject, observer)."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class ProcessingRecord:
    """Registro de processamento de um subject para um observer.

    Atributos:
        subject_id: Identificador opaco do subject (ex: endereço do token)
        observer_id: Identificador opaco do observer (ex: usuário)
        status: ACCEPTED ou REJECTED
        last_decision_time: Epoch da última escrita
        evidence_seen: Fontes já consideradas (ordem de primeira aparição)
        evidence_seen_at: Timestamp mais recente incorporado por fonte
    """

    subject_id: str
    observer_id: str
    status: DecisionStatus
    last_decision_time: float
    evidence_seen: tuple[str, ...] = ()
    evidence_seen_at: dict[str, float] = field(default_factory=dict)

    @property
    def is_accepted(self) -> bool:
        return self.status is DecisionStatus.ACCEPTED

    def to_dict(self) -> dict[str, Any]:
        """Serializa no formato persistido.

        Timestamps vão em milissegundos: o merge no Redis reescreve números
        com cjson, que preserva só 14 dígitos significativos.
        """
        return {
            "status": self.status.value,
            "timestamp": round(self.last_decision_time, TIMESTAMP_DECIMALS),
            "channels_checked": list(self.evidence_seen),
            "channels_called_at": {
                source: round(observed_at, TIMESTAMP_DECIMALS)
                for source, observed_at in self.evidence_seen_at.items()
            },
        }

    @classmethod
    def from_dict(
        cls,
        subject_id: str,
        observer_id: str,
        data: Mapping[str, Any],
    ) -> ProcessingRecord:
        """Deserializa do formato persistido.

        `channels_checked` vazio pode chegar como objeto (`{}`) quando
        escrito por cjson no Redis.
        """
        checked = data.get("channels_checked") or []
        if isinstance(checked, dict):
            checked = list(checked.values())
        called_at = data.get("channels_called_at") or {}
        if not isinstance(called_at, dict):
            called_at = {}
        return cls(
            subject_id=subject_id,
            observer_id=observer_id,
            status=DecisionStatus(data.get("status", DecisionStatus.REJECTED.value)),
            last_decision_time=float(data.get("timestamp", 0.0)),
            evidence_seen=tuple(str(source) for source in checked),
            evidence_seen_at={str(k): float(v) for k, v in called_at.items()},
        )

    @classmethod
    def first_decision(
        cls,
        subject_id: str,
        observer_id: str,
        status: DecisionStatus,
        decided_at: float,
        evidence: Iterable[EvidenceItem],
    ) -> ProcessingRecord:
        """Cria o registro da primeira avaliação de um par."""
        empty = cls(
            subject_id=subject_id,
            observer_id=observer_id,
            status=status,
            last_decision_time=decided_at,
        )
        return empty.with_evidence(evidence, decided_at=decided_at, status=status)

    def with_evidence(
        self,
        evidence: Iterable[EvidenceItem],
        *,
        decided_at: float,
        status: DecisionStatus,
    ) -> ProcessingRecord:
        """Retorna cópia com evidência incorporada, novo status e timestamp."""
        seen, seen_at = _merge_evidence(
            self.evidence_seen,
            self.evidence_seen_at,
            ((item.source_id, item.observed_at) for item in evidence),
        )
        return replace(
            self,
            status=status,
            last_decision_time=decided_at,
            evidence_seen=seen,
            evidence_seen_at=seen_at,
        )


def _merge_evidence(
    seen: tuple[str, ...],
    seen_at: Mapping[str, float],
    updates: Iterable[tuple[str, float]],
) -> tuple[tuple[str, ...], dict[str, float]]:
    """União de fontes mantendo o timestamp mais recente por fonte."""
    ordered = list(seen)
    merged = dict(seen_at)
    for source_id, observed_at in updates:
        if source_id not in ordered:
            ordered.append(source_id)
        current = merged.get(source_id)
        if current is None or observed_at > current:
            merged[source_id] = observed_at
    return tuple(ordered), merged


def merge_records(
    stored: ProcessingRecord | None,
    candidate: ProcessingRecord,
) -> tuple[ProcessingRecord | None, bool]:
    """Aplica a regra de upsert com upgrade monotônico.

    Returns:
        (registro a escrever ou None se nada mudou, status escrito).
        O segundo elemento é o resultado de `upsert`: False apenas quando o
        registro armazenado já é ACCEPTED.
    """
    if stored is None:
        return candidate, True

    seen, seen_at = _merge_evidence(
        stored.evidence_seen,
        stored.evidence_seen_at,
        (
            (source_id, candidate.evidence_seen_at[source_id])
            for source_id in candidate.evidence_seen
            if source_id in candidate.evidence_seen_at
        ),
    )

    if stored.is_accepted:
        if seen == stored.evidence_seen and seen_at == stored.evidence_seen_at:
            return None, False
        return replace(stored, evidence_seen=seen, evidence_seen_at=seen_at), False

    return replace(candidate, evidence_seen=seen, evidence_seen_at=seen_at), True
