"""Factories de stores e colaboradores baseadas em configuração de ambiente."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.bootstrap.clients import create_async_redis_client
from app.infra.directory import RedisObserverDirectory, StaticObserverDirectory
from app.infra.notifier import LogNotificationSink, WebhookConfig, WebhookNotificationSink
from app.infra.stores import (
    MemoryDecisionStore,
    MemoryTrackingStore,
    RedisDecisionStore,
    RedisTrackingStore,
)

if TYPE_CHECKING:
    from app.protocols.collaborators import NotificationSink, ObserverDirectory
    from app.protocols.decision_store import DecisionStoreProtocol
    from app.protocols.tracking_store import TrackingStoreProtocol
    from config.settings import (
        BaseSettings,
        DecisionSettings,
        NotifierSettings,
        TrackingSettings,
    )

logger = logging.getLogger(__name__)


def _warn_memory_backend(component: str, base: BaseSettings) -> None:
    if not base.is_development:
        logger.warning(
            "memory_store_in_non_dev",
            extra={"component": component, "environment": base.environment},
        )


def create_decision_store(
    settings: DecisionSettings,
    base: BaseSettings,
) -> DecisionStoreProtocol:
    """Cria store de decisões (DECISION_BACKEND: memory | redis)."""
    if settings.backend == "redis":
        store: DecisionStoreProtocol = RedisDecisionStore(
            create_async_redis_client(),
            accepted_ttl=settings.accepted_ttl_seconds,
            rejected_ttl=settings.rejected_ttl_seconds,
        )
        logger.info("decision_store_created", extra={"backend": "redis"})
        return store

    if settings.backend == "memory":
        _warn_memory_backend("decision_store", base)
        store = MemoryDecisionStore(
            accepted_ttl=settings.accepted_ttl_seconds,
            rejected_ttl=settings.rejected_ttl_seconds,
        )
        logger.info("decision_store_created", extra={"backend": "memory"})
        return store

    msg = f"DECISION_BACKEND inválido: {settings.backend}"
    raise ValueError(msg)


def create_tracking_store(
    settings: TrackingSettings,
    base: BaseSettings,
) -> TrackingStoreProtocol:
    """Cria store de tracking (TRACKING_BACKEND: memory | redis)."""
    if settings.backend == "redis":
        logger.info("tracking_store_created", extra={"backend": "redis"})
        return RedisTrackingStore(create_async_redis_client())

    if settings.backend == "memory":
        _warn_memory_backend("tracking_store", base)
        logger.info("tracking_store_created", extra={"backend": "memory"})
        return MemoryTrackingStore()

    msg = f"TRACKING_BACKEND inválido: {settings.backend}"
    raise ValueError(msg)


def create_notification_sink(settings: NotifierSettings) -> NotificationSink:
    """Cria sink de notificação (NOTIFIER_BACKEND: log | http)."""
    if settings.backend == "http":
        logger.info("notification_sink_created", extra={"backend": "http"})
        return WebhookNotificationSink(
            WebhookConfig(
                url=settings.webhook_url,
                timeout_seconds=settings.timeout_seconds,
                max_retries=settings.max_retries,
            )
        )
    logger.info("notification_sink_created", extra={"backend": "log"})
    return LogNotificationSink()


def create_observer_directory(settings: NotifierSettings) -> ObserverDirectory:
    """Cria diretório de observers (OBSERVER_DIRECTORY_BACKEND: static | redis)."""
    if settings.directory_backend == "redis":
        logger.info("observer_directory_created", extra={"backend": "redis"})
        return RedisObserverDirectory(create_async_redis_client())
    logger.info(
        "observer_directory_created",
        extra={"backend": "static", "observers": len(settings.observer_ids)},
    )
    return StaticObserverDirectory(settings.observer_ids)
