"""Colaboradores externos fake (predicado, sink, diretório)."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from app.domain.evidence import EvidenceItem


class RecordingSink:
    """Sink que apenas guarda as notificações recebidas."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self._fail_for = fail_for or set()

    async def notify(self, observer_id: str, subject_id: str, context: dict[str, Any]) -> None:
        if observer_id in self._fail_for:
            raise RuntimeError("sink down")
        self.sent.append((observer_id, subject_id, context))

    def for_observer(self, observer_id: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [item for item in self.sent if item[0] == observer_id]


class CallablePredicate:
    """Predicado baseado em função, registrando cada chamada."""

    def __init__(self, func: Callable[[str, str, Sequence[EvidenceItem]], bool]) -> None:
        self._func = func
        self.calls: list[tuple[str, str, tuple[EvidenceItem, ...]]] = []

    def evaluate(self, subject_id: str, observer_id: str, evidence: Sequence[EvidenceItem]) -> bool:
        self.calls.append((subject_id, observer_id, tuple(evidence)))
        return self._func(subject_id, observer_id, evidence)


class FixedDirectory:
    """Diretório com lista fixa e contador de chamadas."""

    def __init__(self, observers: list[str]) -> None:
        self._observers = observers
        self.calls = 0

    async def list_observers(self) -> list[str]:
        self.calls += 1
        return list(self._observers)
