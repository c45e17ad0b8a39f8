"""Diff incremental de evidência.

Dado o conjunto atual de evidência de um subject e o registro armazenado
para um observer, calcula apenas a evidência ainda não considerada:

- sem registro: tudo dentro da janela de lookback (primeira avaliação);
- com registro: fonte nunca vista, ou chamada estritamente mais nova que
  a última incorporada daquela fonte; e sempre posterior à última decisão.

Uma fonte pode chamar o mesmo subject mais de uma vez; só a chamada mais
nova reabre a avaliação. Duplicatas antigas não geram reavaliação.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from app.domain.evidence import EvidenceItem
    from app.domain.processing_record import ProcessingRecord


def _ordered(items: Iterable[EvidenceItem]) -> list[EvidenceItem]:
    # Ordem determinística: source_id, depois instante
    return sorted(items, key=lambda item: (item.source_id, item.observed_at))


def evidence_in_horizon(
    current: Iterable[EvidenceItem],
    lookback_horizon: float,
) -> list[EvidenceItem]:
    """Toda a evidência atual ainda elegível (observed_at >= horizonte)."""
    return _ordered(item for item in current if item.observed_at >= lookback_horizon)


def is_new_evidence(item: EvidenceItem, record: ProcessingRecord) -> bool:
    """Item ainda não contabilizado pelo registro."""
    if item.observed_at <= record.last_decision_time:
        return False
    if item.source_id not in record.evidence_seen:
        return True
    seen_at = record.evidence_seen_at.get(item.source_id)
    return seen_at is None or item.observed_at > seen_at


def diff_evidence(
    current: Iterable[EvidenceItem],
    record: ProcessingRecord | None,
    lookback_horizon: float,
) -> list[EvidenceItem]:
    """Retorna somente a evidência nova para o par.

    Args:
        current: Evidência atual do subject
        record: Registro armazenado (None = primeira avaliação)
        lookback_horizon: Epoch mínimo elegível

    Returns:
        Itens novos, ordenados por source_id (estável).
    """
    eligible = evidence_in_horizon(current, lookback_horizon)
    if record is None:
        return eligible
    return [item for item in eligible if is_new_evidence(item, record)]
