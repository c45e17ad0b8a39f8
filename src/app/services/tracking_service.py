"""Tracking de variação de valor por subject.

Observers registram interesse em um subject com um valor de baseline.
Quando o valor observado atinge um novo múltiplo inteiro do baseline
(a partir de `min_multiple`), o observer é notificado uma única vez
por múltiplo.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from app.domain.tracking import TrackingEntry
from config.logging import mask_identifier

if TYPE_CHECKING:
    from collections.abc import Callable

    from app.protocols.collaborators import NotificationSink
    from app.protocols.tracking_store import TrackingStoreProtocol
    from app.services.rate_governor import OutboundRateGovernor
    from app.services.reverse_index import ReverseIndexCache

logger = logging.getLogger(__name__)


class TrackingService:
    """Registra tracking e dispara notificações de múltiplo."""

    def __init__(
        self,
        *,
        tracking_store: TrackingStoreProtocol,
        reverse_index: ReverseIndexCache,
        sink: NotificationSink,
        governor: OutboundRateGovernor,
        ttl_seconds: int = 604800,
        min_multiple: int = 2,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tracking_store = tracking_store
        self._reverse_index = reverse_index
        self._sink = sink
        self._governor = governor
        self._ttl_seconds = ttl_seconds
        self._min_multiple = min_multiple
        self._clock = clock

    async def track(
        self,
        subject_id: str,
        observer_id: str,
        baseline_value: float,
    ) -> TrackingEntry:
        """Inicia (ou reinicia) tracking do par.

        Re-tracking sobrescreve baseline e zera o último múltiplo.
        """
        if baseline_value <= 0:
            raise ValueError("baseline_value deve ser positivo")
        entry = TrackingEntry(
            subject_id=subject_id,
            observer_id=str(observer_id),
            baseline_value=float(baseline_value),
            created_at=self._clock(),
        )
        await self._tracking_store.save(entry, self._ttl_seconds)
        self._reverse_index.add(entry.subject_id, entry.observer_id)
        logger.info(
            "tracking_started",
            extra={
                "subject_id": mask_identifier(subject_id),
                "observer_id": entry.observer_id,
                "ttl_seconds": self._ttl_seconds,
            },
        )
        return entry

    async def observe_value(self, subject_id: str, value: float) -> list[str]:
        """Processa novo valor do subject.

        Returns:
            Observers notificados nesta chamada.
        """
        notified: list[str] = []
        for observer_id in sorted(self._reverse_index.lookup(subject_id)):
            try:
                if await self._check_observer(subject_id, observer_id, value):
                    notified.append(observer_id)
            except Exception as exc:
                logger.warning(
                    "tracking_notification_failed",
                    extra={
                        "subject_id": mask_identifier(subject_id),
                        "observer_id": observer_id,
                        "error_type": type(exc).__name__,
                    },
                )
        return notified

    async def _check_observer(self, subject_id: str, observer_id: str, value: float) -> bool:
        entry = await self._tracking_store.get(subject_id, observer_id)
        if entry is None:
            # Entrada expirada; o índice se corrige no próximo rebuild
            return False

        milestone = entry.milestone_for(value)
        if milestone < self._min_multiple or milestone <= entry.last_notified_multiple:
            return False

        if not await self._tracking_store.update_multiple(subject_id, observer_id, milestone):
            return False

        await self._governor.acquire(observer_id)
        await self._sink.notify(
            observer_id,
            subject_id,
            {
                "kind": "multiple",
                "multiple": milestone,
                "baseline_value": entry.baseline_value,
                "value": value,
            },
        )
        logger.info(
            "tracking_multiple_notified",
            extra={
                "subject_id": mask_identifier(subject_id),
                "observer_id": observer_id,
                "multiple": milestone,
            },
        )
        return True
