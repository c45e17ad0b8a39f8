"""Predicados de filtro embutidos."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.domain.evidence import EvidenceItem


class MinimumSourcesPredicate:
    """Aceita quando a evidência vem de pelo menos `min_sources` fontes distintas."""

    def __init__(self, min_sources: int = 2) -> None:
        if min_sources < 1:
            raise ValueError("min_sources deve ser >= 1")
        self._min_sources = min_sources

    @property
    def min_sources(self) -> int:
        return self._min_sources

    def evaluate(
        self,
        subject_id: str,
        observer_id: str,
        evidence: Sequence[EvidenceItem],
    ) -> bool:
        return len({item.source_id for item in evidence}) >= self._min_sources
