"""Redis Decision Store — decisões por par (subject, observer) no Redis.

O upsert com upgrade monotônico roda como script Lua no servidor: leitura,
regra de upgrade, merge de evidência e `SET ... EX` numa única operação
atômica. Dois workers concorrentes (um rejeitando com evidência antiga,
outro aceitando) nunca derrubam o ACCEPTED.

Contrato de Keys:
    decision:{subject_id}:{observer_id}
    Valor: JSON no formato persistido (status, timestamp, channels_checked,
    channels_called_at). TTL fica no próprio Redis.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from app.domain.processing_record import ProcessingRecord
from app.protocols.decision_store import DecisionStoreProtocol
from config.logging import mask_identifier
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

# Prefixo para namespace de decisões
DECISION_PREFIX = "decision:"

# KEYS[1] = chave do par
# ARGV[1] = candidato (JSON), ARGV[2] = TTL aceito, ARGV[3] = TTL rejeitado
# Retorno: 1 = status do candidato escrito, 0 = armazenado já ACCEPTED
UPSERT_SCRIPT = """
local function ttl_for(status)
  if status == 'accepted' then
    return tonumber(ARGV[2])
  end
  return tonumber(ARGV[3])
end

local function as_table(value)
  if type(value) == 'table' then
    return value
  end
  return {}
end

local candidate = cjson.decode(ARGV[1])
local raw = redis.call('GET', KEYS[1])
if not raw then
  redis.call('SET', KEYS[1], ARGV[1], 'EX', ttl_for(candidate.status))
  return 1
end

local stored = cjson.decode(raw)
local checked = as_table(stored.channels_checked)
local called = as_table(stored.channels_called_at)
local present = {}
local changed = false
for _, source in ipairs(checked) do
  present[source] = true
end
for _, source in ipairs(as_table(candidate.channels_checked)) do
  if not present[source] then
    table.insert(checked, source)
    present[source] = true
    changed = true
  end
end
for source, observed_at in pairs(as_table(candidate.channels_called_at)) do
  local current = called[source]
  if current == nil or observed_at > current then
    called[source] = observed_at
    changed = true
  end
end

if stored.status == 'accepted' then
  if changed then
    stored.channels_checked = checked
    stored.channels_called_at = called
    redis.call('SET', KEYS[1], cjson.encode(stored), 'EX', ttl_for('accepted'))
  end
  return 0
end

candidate.channels_checked = checked
candidate.channels_called_at = called
redis.call('SET', KEYS[1], cjson.encode(candidate), 'EX', ttl_for(candidate.status))
return 1
"""


class RedisDecisionStore(DecisionStoreProtocol):
    """Store de decisões usando Redis.

    Args:
        async_redis_client: Cliente Redis assíncrono
        accepted_ttl: TTL de registros aceitos (segundos)
        rejected_ttl: TTL de registros rejeitados (segundos)
    """

    def __init__(
        self,
        async_redis_client: AsyncRedis[bytes],
        accepted_ttl: int = 14 * 24 * 3600,
        rejected_ttl: int = 3600,
    ) -> None:
        self._async_redis = async_redis_client
        self._accepted_ttl = accepted_ttl
        self._rejected_ttl = rejected_ttl
        self._upsert_script = async_redis_client.register_script(UPSERT_SCRIPT)

    def _key(self, subject_id: str, observer_id: str) -> str:
        """Gera chave Redis com namespace."""
        return f"{DECISION_PREFIX}{subject_id}:{observer_id}"

    async def get(self, subject_id: str, observer_id: str) -> ProcessingRecord | None:
        """Carrega registro do Redis."""
        try:
            data = await self._async_redis.get(self._key(subject_id, observer_id))
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar decisão no Redis") from exc
        if data is None:
            return None
        try:
            raw = data if isinstance(data, str) else data.decode()
            return ProcessingRecord.from_dict(subject_id, observer_id, json.loads(raw))
        except (json.JSONDecodeError, KeyError, ValueError, AttributeError) as e:
            logger.warning(
                "decision_load_error",
                extra={"subject_id": mask_identifier(subject_id), "error": str(e)},
            )
            return None

    async def upsert(self, record: ProcessingRecord) -> bool:
        """Escrita condicional atômica via script Lua."""
        try:
            result = await self._upsert_script(
                keys=[self._key(record.subject_id, record.observer_id)],
                args=[
                    json.dumps(record.to_dict()),
                    self._accepted_ttl,
                    self._rejected_ttl,
                ],
            )
        except Exception as exc:
            raise RedisConnectionError("Falha ao gravar decisão no Redis") from exc
        written = int(result) == 1
        logger.debug(
            "decision_upserted",
            extra={
                "subject_id": mask_identifier(record.subject_id),
                "status": record.status.value,
                "written": written,
            },
        )
        return written
