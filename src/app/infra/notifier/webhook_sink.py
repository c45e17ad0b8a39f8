"""Sink de notificação via webhook HTTP.

POST JSON para a URL configurada, com retry e backoff exponencial em
429/5xx e erros de conexão. Esgotadas as tentativas, levanta
NotificationError (o pipeline registra FAILED para o observer).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from config.logging import mask_identifier
from utils.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass
class WebhookConfig:
    """Configuração do sink HTTP."""

    url: str
    timeout_seconds: float = 5.0
    max_retries: int = 2
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 10.0


class WebhookNotificationSink:
    """Entrega notificações para um webhook externo."""

    def __init__(
        self,
        config: WebhookConfig,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._sleep = sleep

    async def notify(self, observer_id: str, subject_id: str, context: dict[str, Any]) -> None:
        payload = {"observer_id": observer_id, "subject_id": subject_id, "context": context}
        for attempt in range(self._config.max_retries + 1):
            try:
                response = await self._post(payload)
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                if attempt >= self._config.max_retries:
                    raise NotificationError("Webhook indisponível") from exc
                await self._backoff(attempt)
                continue

            if response.status_code == 429 or response.status_code >= 500:
                if attempt >= self._config.max_retries:
                    raise NotificationError(
                        f"Webhook respondeu {response.status_code} após {attempt + 1} tentativas"
                    )
                await self._backoff(attempt)
                continue

            if response.status_code >= 400:
                raise NotificationError(f"Webhook rejeitou notificação ({response.status_code})")

            logger.debug(
                "webhook_notification_delivered",
                extra={
                    "observer_id": observer_id,
                    "subject_id": mask_identifier(subject_id),
                    "attempt": attempt + 1,
                },
            )
            return

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self._config.url,
                json=payload,
                timeout=self._config.timeout_seconds,
            )
        async with httpx.AsyncClient() as client:
            return await client.post(
                self._config.url,
                json=payload,
                timeout=self._config.timeout_seconds,
            )

    async def _backoff(self, attempt: int) -> None:
        backoff = min((2**attempt) * self._config.backoff_base_seconds, self._config.backoff_max_seconds)
        logger.info("webhook_backoff", extra={"backoff_seconds": backoff, "attempt": attempt + 1})
        await self._sleep(backoff)
