"""Evidência — chamadas de fontes (canais) a favor de um subject (token).

Cada `EvidenceItem` é uma chamada de uma fonte em um instante. Um
`SubjectBundle` agrupa toda a evidência atual de um subject, como chega
da fonte externa (stream/poll).

Itens malformados são descartados individualmente; o restante do bundle
segue normalmente.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from utils.errors import MalformedEvidenceError

logger = logging.getLogger(__name__)

# Casas decimais preservadas nos timestamps (milissegundos)
TIMESTAMP_DECIMALS = 3


def parse_timestamp(value: Any) -> float:
    """Converte timestamp (epoch, string numérica ou ISO-8601) para epoch em segundos.

    Datas ISO sem timezone são tratadas como UTC. O resultado é arredondado
    para milissegundos, a precisão que sobrevive ao merge no Redis.

    Raises:
        MalformedEvidenceError: Se o valor estiver ausente, não for parseável
            ou não for finito (inf/nan).
    """
    if isinstance(value, bool) or value is None:
        raise MalformedEvidenceError("timestamp ausente")
    if isinstance(value, (int, float)):
        return _finite_epoch(float(value))
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            numeric = float(text)
        except ValueError:
            numeric = None
        if numeric is not None:
            return _finite_epoch(numeric)
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise MalformedEvidenceError(f"timestamp inválido: {text!r}") from exc
    else:
        raise MalformedEvidenceError("timestamp inválido")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return _finite_epoch(moment.timestamp())


def _finite_epoch(epoch: float) -> float:
    if not math.isfinite(epoch):
        raise MalformedEvidenceError(f"timestamp não finito: {epoch!r}")
    return round(epoch, TIMESTAMP_DECIMALS)


@dataclass(frozen=True, slots=True)
class EvidenceItem:
    """Uma chamada de uma fonte para um subject.

    Atributos:
        source_id: Identificador da fonte (ex: canal que chamou o token)
        observed_at: Instante da chamada (epoch em segundos)
        payload: Dados opacos do domínio (ex: market cap no momento da chamada)
    """

    source_id: str
    observed_at: float
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serializa item (contexto de notificação/auditoria)."""
        return {
            "source_id": self.source_id,
            "observed_at": self.observed_at,
            "payload": dict(self.payload),
        }

    @classmethod
    def from_payload(cls, raw: Any) -> EvidenceItem:
        """Cria item a partir do payload bruto.

        Raises:
            MalformedEvidenceError: Se source_id ou observed_at estiverem ausentes.
        """
        if not isinstance(raw, dict):
            raise MalformedEvidenceError("item de evidência não é um objeto")
        source_id = raw.get("source_id")
        if source_id is None or not str(source_id).strip():
            raise MalformedEvidenceError("source_id ausente")
        payload = raw.get("payload") or {}
        if not isinstance(payload, dict):
            payload = {"value": payload}
        return cls(
            source_id=str(source_id).strip(),
            observed_at=parse_timestamp(raw.get("observed_at")),
            payload=payload,
        )


@dataclass(frozen=True, slots=True)
class SubjectBundle:
    """Toda a evidência atual de um subject, como recebida da fonte."""

    subject_id: str
    evidence: tuple[EvidenceItem, ...] = ()
    received_at: float = field(default_factory=time.time)
    skipped_items: int = 0

    @property
    def sources(self) -> frozenset[str]:
        """Fontes distintas presentes no bundle."""
        return frozenset(item.source_id for item in self.evidence)

    @classmethod
    def from_payload(cls, raw: dict[str, Any]) -> SubjectBundle:
        """Cria bundle a partir do payload bruto, descartando itens malformados.

        Raises:
            MalformedEvidenceError: Se subject_id estiver ausente.
        """
        subject_id = raw.get("subject_id")
        if subject_id is None or not str(subject_id).strip():
            raise MalformedEvidenceError("subject_id ausente")
        subject = str(subject_id).strip()

        items: list[EvidenceItem] = []
        skipped = 0
        for position, entry in enumerate(raw.get("evidence") or []):
            try:
                items.append(EvidenceItem.from_payload(entry))
            except MalformedEvidenceError as exc:
                skipped += 1
                logger.warning(
                    "evidence_item_skipped",
                    extra={"position": position, "reason": str(exc)},
                )
        return cls(subject_id=subject, evidence=tuple(items), skipped_items=skipped)
