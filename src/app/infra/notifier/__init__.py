"""Sinks de notificação (log e webhook HTTP)."""

from app.infra.notifier.log_sink import LogNotificationSink
from app.infra.notifier.webhook_sink import WebhookConfig, WebhookNotificationSink

__all__ = ["LogNotificationSink", "WebhookConfig", "WebhookNotificationSink"]
