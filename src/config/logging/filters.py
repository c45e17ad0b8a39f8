"""Filter de contexto para os logs do motor.

Todo record recebe:
- correlation_id: bundle (ou requisição) em processamento
- service: nome do serviço
- environment: ambiente de execução, quando informado
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class CorrelationIdFilter(logging.Filter):
    """Enriquece records com correlation_id e campos estáticos do serviço.

    O correlation_id passado explicitamente via `extra` tem precedência
    sobre o valor do contexto. O filter nunca descarta records.
    """

    def __init__(
        self,
        service_name: str,
        correlation_id_getter: Callable[[], str] | None = None,
        environment: str | None = None,
    ) -> None:
        super().__init__()
        self._static_fields: dict[str, str] = {"service": service_name}
        if environment:
            self._static_fields["environment"] = environment
        self._correlation_id_getter = correlation_id_getter

    def _current_correlation_id(self) -> str:
        if self._correlation_id_getter is None:
            return ""
        return self._correlation_id_getter() or ""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = self._current_correlation_id()
        for name, value in self._static_fields.items():
            setattr(record, name, value)
        return True
