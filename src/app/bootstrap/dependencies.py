"""Composition root — cria e conecta os componentes do motor.

`build_container()` lê as settings de ambiente e monta:
    stores → caches → CachedDecisionStore → ReverseIndexCache →
    LookupGateway → OutboundRateGovernor → IngestionPipeline / TrackingService

Colaboradores (predicado, sink, diretório) e relógio podem ser injetados
para testes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.bootstrap.clients import close_async_redis_client, create_async_redis_client
from app.bootstrap.dependencies_stores import (
    create_decision_store,
    create_notification_sink,
    create_observer_directory,
    create_tracking_store,
)
from app.infra.cache import LayeredCache
from app.infra.stores import MemoryAuditStore
from app.pipeline import BackgroundTasks, IngestionPipeline
from app.services import (
    CachedDecisionStore,
    LookupGateway,
    MinimumSourcesPredicate,
    OutboundRateGovernor,
    ReverseIndexCache,
    TrackingService,
)
from config.settings import (
    get_base_settings,
    get_cache_settings,
    get_decision_settings,
    get_notifier_settings,
    get_pipeline_settings,
    get_rate_limit_settings,
    get_tracking_settings,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from app.protocols.collaborators import FilterPredicate, NotificationSink, ObserverDirectory
    from app.protocols.decision_store import DecisionStoreProtocol
    from app.protocols.tracking_store import TrackingStoreProtocol

logger = logging.getLogger(__name__)

READINESS_TIMEOUT_SECONDS = 2.0


@dataclass
class AppContainer:
    """Componentes vivos do serviço e seu ciclo de vida."""

    pipeline: IngestionPipeline
    tracking_service: TrackingService
    reverse_index: ReverseIndexCache
    decision_store: CachedDecisionStore
    governor: OutboundRateGovernor
    caches: tuple[LayeredCache, ...]
    uses_redis: bool = False
    sweep_interval_seconds: float = 120.0
    started: bool = field(default=False, init=False)

    async def start(self) -> None:
        """Reconstrói o índice reverso, inicia sweepers e workers."""
        indexed = await self.reverse_index.rebuild()
        for cache in self.caches:
            cache.start_sweeper(self.sweep_interval_seconds)
        await self.pipeline.start()
        self.started = True
        logger.info(
            "app_container_started",
            extra={"indexed_pairs": indexed, "caches": len(self.caches)},
        )

    async def stop(self) -> None:
        """Drena pipeline e tasks, para sweepers e fecha clientes."""
        await self.pipeline.stop()
        for cache in self.caches:
            await cache.stop_sweeper()
        if self.uses_redis:
            await close_async_redis_client()
        self.started = False

    async def check_ready(self) -> dict[str, Any]:
        """Verifica dependências para o readiness probe."""
        checks: dict[str, Any] = {
            "pipeline": self.pipeline.is_running,
            "queue_depth": self.pipeline.queue_depth,
            "queue_capacity": self.pipeline.queue_capacity,
        }
        if self.uses_redis:
            try:
                await asyncio.wait_for(
                    create_async_redis_client().ping(),
                    timeout=READINESS_TIMEOUT_SECONDS,
                )
                checks["redis"] = "ok"
            except Exception as exc:
                logger.warning("readiness_redis_failed", extra={"error_type": type(exc).__name__})
                checks["redis"] = "unavailable"
        return checks

    def stats(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline.stats(),
            "caches": [cache.stats() for cache in self.caches],
            "reverse_index": {
                "subjects": len(self.reverse_index),
                "pairs": self.reverse_index.size(),
            },
            "rate_governor": {"tracked_observers": self.governor.tracked_observers()},
        }


def build_container(
    *,
    decision_backing: DecisionStoreProtocol | None = None,
    tracking_store: TrackingStoreProtocol | None = None,
    predicate: FilterPredicate | None = None,
    sink: NotificationSink | None = None,
    observer_directory: ObserverDirectory | None = None,
    clock: Callable[[], float] = time.time,
) -> AppContainer:
    """Monta o container a partir das settings de ambiente."""
    base = get_base_settings()
    decision_settings = get_decision_settings()
    tracking_settings = get_tracking_settings()
    cache_settings = get_cache_settings()
    pipeline_settings = get_pipeline_settings()
    rate_settings = get_rate_limit_settings()
    notifier_settings = get_notifier_settings()

    decision_cache = LayeredCache(
        "decision", cache_settings.decision_capacity, cache_settings.decision_ttl_seconds
    )
    fallback_cache = LayeredCache(
        "decision_fallback", cache_settings.fallback_capacity, cache_settings.fallback_ttl_seconds
    )
    lookup_cache = LayeredCache(
        "lookup", cache_settings.lookup_capacity, cache_settings.lookup_ttl_seconds
    )

    decision_store = CachedDecisionStore(
        decision_backing or create_decision_store(decision_settings, base),
        decision_cache,
        fallback=fallback_cache,
        timeout_seconds=decision_settings.store_timeout_seconds,
    )
    tracking = tracking_store or create_tracking_store(tracking_settings, base)
    reverse_index = ReverseIndexCache(tracking)
    governor = OutboundRateGovernor(
        per_observer_rate=rate_settings.per_observer_rate,
        global_rate=rate_settings.global_rate,
        burst=rate_settings.burst,
    )
    notification_sink = sink or create_notification_sink(notifier_settings)

    pipeline = IngestionPipeline(
        decision_store=decision_store,
        reverse_index=reverse_index,
        lookup_gateway=LookupGateway(
            lookup_cache,
            max_concurrent=pipeline_settings.max_concurrent_lookups,
            timeout_seconds=pipeline_settings.lookup_timeout_seconds,
        ),
        observer_directory=observer_directory or create_observer_directory(notifier_settings),
        predicate=predicate or MinimumSourcesPredicate(notifier_settings.filter_min_sources),
        sink=notification_sink,
        governor=governor,
        pipeline_settings=pipeline_settings,
        decision_settings=decision_settings,
        audit_store=MemoryAuditStore(),
        background=BackgroundTasks(),
        clock=clock,
    )
    tracking_service = TrackingService(
        tracking_store=tracking,
        reverse_index=reverse_index,
        sink=notification_sink,
        governor=governor,
        ttl_seconds=tracking_settings.ttl_seconds,
        min_multiple=tracking_settings.min_multiple,
        clock=clock,
    )

    uses_redis = "redis" in (
        decision_settings.backend,
        tracking_settings.backend,
        notifier_settings.directory_backend,
    )
    logger.info(
        "app_container_built",
        extra={
            "environment": base.environment,
            "decision_backend": decision_settings.backend,
            "tracking_backend": tracking_settings.backend,
            "evaluation_policy": decision_settings.evaluation_policy,
        },
    )
    return AppContainer(
        pipeline=pipeline,
        tracking_service=tracking_service,
        reverse_index=reverse_index,
        decision_store=decision_store,
        governor=governor,
        caches=(decision_cache, fallback_cache, lookup_cache),
        uses_redis=uses_redis,
        sweep_interval_seconds=cache_settings.sweep_interval_seconds,
    )
