"""Sink de notificação via log estruturado (desenvolvimento)."""

from __future__ import annotations

import logging
from typing import Any

from config.logging import mask_identifier

logger = logging.getLogger(__name__)


class LogNotificationSink:
    """Registra cada notificação como evento de log."""

    def __init__(self) -> None:
        self._sent = 0

    @property
    def sent(self) -> int:
        return self._sent

    async def notify(self, observer_id: str, subject_id: str, context: dict[str, Any]) -> None:
        self._sent += 1
        logger.info(
            "notification_sent",
            extra={
                "observer_id": observer_id,
                "subject_id": mask_identifier(subject_id),
                "kind": context.get("kind"),
            },
        )
