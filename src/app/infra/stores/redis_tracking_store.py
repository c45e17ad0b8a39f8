"""Redis Tracking Store — entradas de tracking com TTL.

Estrutura:
- tracking:{subject_id}:{observer_id} → JSON da entrada (SETEX)
O índice reverso é reconstruído por SCAN no startup.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from app.domain.tracking import TrackingEntry, tracking_map_key
from app.protocols.tracking_store import TrackingStoreProtocol
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

# Prefixo para namespace de tracking
TRACKING_PREFIX = "tracking:"

# Tamanho do lote de MGET durante o scan
_SCAN_BATCH = 200

# Tentativas do compare-and-set de múltiplo antes de desistir
_CAS_ATTEMPTS = 5

# KEYS[1] = chave do par
# ARGV[1] = valor lido (esperado), ARGV[2] = novo valor
# Retorno: 1 = gravado, 0 = valor mudou desde a leitura, -1 = entrada ausente
COMPARE_AND_SET_SCRIPT = """
local raw = redis.call('GET', KEYS[1])
if not raw then
  return -1
end
if raw ~= ARGV[1] then
  return 0
end
redis.call('SET', KEYS[1], ARGV[2], 'KEEPTTL')
return 1
"""


def _decode(data: bytes | str) -> TrackingEntry:
    return TrackingEntry.from_dict(json.loads(data if isinstance(data, str) else data.decode()))


class RedisTrackingStore(TrackingStoreProtocol):
    """Store de tracking usando Redis.

    Args:
        async_redis_client: Cliente Redis assíncrono
    """

    def __init__(self, async_redis_client: AsyncRedis[bytes]) -> None:
        self._async_redis = async_redis_client
        self._compare_and_set = async_redis_client.register_script(COMPARE_AND_SET_SCRIPT)

    def _key(self, subject_id: str, observer_id: str) -> str:
        """Gera chave Redis com namespace."""
        return f"{TRACKING_PREFIX}{tracking_map_key(subject_id, observer_id)}"

    async def save(self, entry: TrackingEntry, ttl_seconds: int) -> None:
        """Salva entrada com TTL (sobrescreve baseline anterior)."""
        try:
            await self._async_redis.setex(
                self._key(entry.subject_id, entry.observer_id),
                ttl_seconds,
                json.dumps(entry.to_dict()),
            )
        except Exception as exc:
            raise RedisConnectionError("Falha ao salvar tracking no Redis") from exc
        logger.debug("tracking_saved", extra={"ttl": ttl_seconds})

    async def get(self, subject_id: str, observer_id: str) -> TrackingEntry | None:
        """Busca entrada ativa."""
        try:
            data = await self._async_redis.get(self._key(subject_id, observer_id))
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar tracking no Redis") from exc
        if data is None:
            return None
        try:
            return _decode(data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("tracking_parse_error", extra={"error": str(e)})
            return None

    async def iter_entries(self) -> AsyncIterator[TrackingEntry]:
        """Varre todas as entradas (SCAN + MGET em lotes)."""
        batch: list[bytes | str] = []
        try:
            async for key in self._async_redis.scan_iter(
                match=f"{TRACKING_PREFIX}*", count=_SCAN_BATCH
            ):
                batch.append(key)
                if len(batch) >= _SCAN_BATCH:
                    for entry in await self._load_batch(batch):
                        yield entry
                    batch = []
            if batch:
                for entry in await self._load_batch(batch):
                    yield entry
        except RedisConnectionError:
            raise
        except Exception as exc:
            raise RedisConnectionError("Falha ao varrer tracking no Redis") from exc

    async def _load_batch(self, keys: list[bytes | str]) -> list[TrackingEntry]:
        try:
            values = await self._async_redis.mget(keys)
        except Exception as exc:
            raise RedisConnectionError("Falha ao carregar lote de tracking") from exc
        entries: list[TrackingEntry] = []
        for value in values:
            # Chave pode expirar entre SCAN e MGET
            if value is None:
                continue
            try:
                entries.append(_decode(value))
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning("tracking_parse_error", extra={"error": str(e)})
        return entries

    async def update_multiple(self, subject_id: str, observer_id: str, multiple: int) -> bool:
        """Avança o último múltiplo notificado preservando o TTL (KEEPTTL).

        Compare-and-set sobre o valor lido: só grava se a entrada não mudou
        desde a leitura e se o múltiplo armazenado é menor. Entre chamadas
        concorrentes para o mesmo múltiplo, apenas uma recebe True.
        """
        key = self._key(subject_id, observer_id)
        for _ in range(_CAS_ATTEMPTS):
            try:
                raw = await self._async_redis.get(key)
            except Exception as exc:
                raise RedisConnectionError("Falha ao consultar tracking no Redis") from exc
            if raw is None:
                return False
            try:
                entry = _decode(raw)
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning("tracking_parse_error", extra={"error": str(e)})
                return False
            if entry.last_notified_multiple >= multiple:
                return False

            data = entry.to_dict()
            data["last_notified_multiple"] = multiple
            try:
                result = await self._compare_and_set(keys=[key], args=[raw, json.dumps(data)])
            except Exception as exc:
                raise RedisConnectionError("Falha ao atualizar tracking no Redis") from exc
            if int(result) == 1:
                return True
            if int(result) == -1:
                return False
            logger.debug("tracking_multiple_conflict", extra={"multiple": multiple})
        logger.warning("tracking_multiple_conflict_exhausted", extra={"multiple": multiple})
        return False
