"""Tasks assíncronas fire-and-forget (auditoria, escritas secundárias).

Ninguém aguarda o resultado; falhas vão apenas para o log e nunca voltam
ao caminho crítico de decisão.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Agenda coroutines com limite de concorrência e referência forte.

    Args:
        max_concurrent: Tasks secundárias executando ao mesmo tempo
    """

    def __init__(self, max_concurrent: int = 100) -> None:
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active: set[asyncio.Task[Any]] = set()

    def schedule(self, coroutine: Awaitable[None], name: str) -> int:
        """Agenda task sem aguardar. Retorna quantidade de tasks ativas."""
        task = asyncio.create_task(self._run_with_limit(coroutine), name=name)
        self._active.add(task)
        task.add_done_callback(self._on_task_done)
        return len(self._active)

    async def _run_with_limit(self, coroutine: Awaitable[None]) -> None:
        async with self._semaphore:
            await coroutine

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._active.discard(task)
        with contextlib.suppress(asyncio.CancelledError):
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "background_task_failed",
                    extra={
                        "task": task.get_name(),
                        "error_type": type(exc).__name__,
                        "active_tasks": len(self._active),
                    },
                )

    @property
    def active(self) -> int:
        return len(self._active)

    async def drain(self, timeout_seconds: float = 30.0) -> None:
        """Aguarda tasks pendentes no shutdown; cancela o que sobrar."""
        if not self._active:
            return

        pending_now = list(self._active)
        logger.info(
            "background_tasks_shutdown_wait",
            extra={"pending_tasks": len(pending_now), "timeout_seconds": timeout_seconds},
        )
        _, pending = await asyncio.wait(pending_now, timeout=timeout_seconds)
        if not pending:
            return

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.warning(
            "background_tasks_shutdown_cancelled",
            extra={"cancelled_tasks": len(pending)},
        )
