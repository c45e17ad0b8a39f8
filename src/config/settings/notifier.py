"""Settings dos colaboradores externos do serviço standalone.

Sink de notificação, filtro padrão e diretório estático de observers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

NotifierBackend = Literal["log", "http"]
DirectoryBackend = Literal["static", "redis"]


@dataclass(frozen=True)
class NotifierSettings:
    """Configurações de notificação e colaboradores.

    Attributes:
        backend: Sink de notificação (log|http)
        webhook_url: URL do webhook quando backend=http
        timeout_seconds: Timeout por tentativa de entrega
        max_retries: Tentativas extras em falhas retentáveis
        filter_min_sources: Fontes distintas exigidas pelo filtro padrão
        directory_backend: Origem da lista completa de observers
        observer_ids: Observers do diretório estático
    """

    backend: NotifierBackend = "log"
    webhook_url: str = ""
    timeout_seconds: float = 5.0
    max_retries: int = 2
    filter_min_sources: int = 2
    directory_backend: DirectoryBackend = "static"
    observer_ids: tuple[str, ...] = field(default_factory=tuple)

    def validate(self) -> list[str]:
        """Valida configurações de notificação."""
        errors: list[str] = []

        if self.backend == "http" and not self.webhook_url:
            errors.append("NOTIFIER_BACKEND=http requer NOTIFIER_WEBHOOK_URL")

        if self.timeout_seconds <= 0:
            errors.append("NOTIFIER_TIMEOUT_SECONDS deve ser > 0")

        if self.max_retries < 0:
            errors.append("NOTIFIER_MAX_RETRIES deve ser >= 0")

        if self.filter_min_sources < 1:
            errors.append("FILTER_MIN_SOURCES deve ser >= 1")

        return errors


def _parse_observer_ids(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _load_notifier_from_env() -> NotifierSettings:
    """Carrega NotifierSettings de variáveis de ambiente."""
    backend: NotifierBackend = (
        "http" if os.getenv("NOTIFIER_BACKEND", "log").lower() == "http" else "log"
    )
    directory: DirectoryBackend = (
        "redis" if os.getenv("OBSERVER_DIRECTORY_BACKEND", "static").lower() == "redis"
        else "static"
    )
    return NotifierSettings(
        backend=backend,
        webhook_url=os.getenv("NOTIFIER_WEBHOOK_URL", ""),
        timeout_seconds=float(os.getenv("NOTIFIER_TIMEOUT_SECONDS", "5.0")),
        max_retries=int(os.getenv("NOTIFIER_MAX_RETRIES", "2")),
        filter_min_sources=int(os.getenv("FILTER_MIN_SOURCES", "2")),
        directory_backend=directory,
        observer_ids=_parse_observer_ids(os.getenv("OBSERVER_IDS", "")),
    )


@lru_cache(maxsize=1)
def get_notifier_settings() -> NotifierSettings:
    """Retorna instância cacheada de NotifierSettings."""
    return _load_notifier_from_env()
