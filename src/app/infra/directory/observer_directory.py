"""Diretórios de observers (enumeração completa)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

OBSERVERS_KEY = "observers"


class StaticObserverDirectory:
    """Lista fixa de observers (env OBSERVER_IDS)."""

    def __init__(self, observer_ids: Iterable[str | int] = ()) -> None:
        self._observer_ids = tuple(dict.fromkeys(str(observer_id) for observer_id in observer_ids))

    async def list_observers(self) -> list[str]:
        return list(self._observer_ids)


class RedisObserverDirectory:
    """Observers registrados no set Redis `observers`."""

    def __init__(self, async_redis_client: AsyncRedis, key: str = OBSERVERS_KEY) -> None:
        self._redis = async_redis_client
        self._key = key

    async def list_observers(self) -> list[str]:
        try:
            members = await self._redis.smembers(self._key)
        except Exception as exc:
            logger.error("observer_directory_error", extra={"error_type": type(exc).__name__})
            raise RedisConnectionError("Falha ao listar observers no Redis") from exc
        return sorted(
            member.decode("utf-8") if isinstance(member, bytes) else str(member)
            for member in members
        )
