"""Testes do RedisDecisionStore com mock."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.processing_record import DecisionStatus, ProcessingRecord
from app.infra.stores.redis_decision_store import UPSERT_SCRIPT, RedisDecisionStore
from utils.errors import RedisConnectionError


def _redis_with_script(result: object = 1) -> tuple[MagicMock, AsyncMock]:
    mock_redis = MagicMock()
    script = AsyncMock(return_value=result)
    mock_redis.register_script.return_value = script
    return mock_redis, script


def _record(status: DecisionStatus = DecisionStatus.REJECTED) -> ProcessingRecord:
    return ProcessingRecord("tokenX", "42", status, 1.0, ("chanA",), {"chanA": 0.0})


class TestRedisDecisionStore:
    def test_registers_upsert_script(self) -> None:
        mock_redis, _ = _redis_with_script()
        RedisDecisionStore(mock_redis)
        mock_redis.register_script.assert_called_once_with(UPSERT_SCRIPT)

    @pytest.mark.asyncio
    async def test_get_decodes_persisted_format(self) -> None:
        mock_redis, _ = _redis_with_script()
        mock_redis.get = AsyncMock(
            return_value=json.dumps(
                {
                    "status": "accepted",
                    "timestamp": 601,
                    "channels_checked": ["chanA", "chanB"],
                    "channels_called_at": {"chanA": 0, "chanB": 600},
                }
            ).encode()
        )
        store = RedisDecisionStore(mock_redis)

        record = await store.get("tokenX", "42")

        mock_redis.get.assert_awaited_once_with("decision:tokenX:42")
        assert record is not None
        assert record.status is DecisionStatus.ACCEPTED
        assert record.evidence_seen == ("chanA", "chanB")
        assert record.evidence_seen_at == {"chanA": 0.0, "chanB": 600.0}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        mock_redis, _ = _redis_with_script()
        mock_redis.get = AsyncMock(return_value=None)
        assert await RedisDecisionStore(mock_redis).get("tokenX", "42") is None

    @pytest.mark.asyncio
    async def test_get_corrupted_payload_returns_none(self) -> None:
        mock_redis, _ = _redis_with_script()
        mock_redis.get = AsyncMock(return_value=b"{not json")
        assert await RedisDecisionStore(mock_redis).get("tokenX", "42") is None

    @pytest.mark.asyncio
    async def test_get_wraps_errors(self) -> None:
        mock_redis, _ = _redis_with_script()
        mock_redis.get = AsyncMock(side_effect=Exception("redis down"))
        with pytest.raises(RedisConnectionError):
            await RedisDecisionStore(mock_redis).get("tokenX", "42")

    @pytest.mark.asyncio
    async def test_upsert_passes_candidate_and_both_ttls(self) -> None:
        mock_redis, script = _redis_with_script(1)
        store = RedisDecisionStore(mock_redis, accepted_ttl=1209600, rejected_ttl=3600)
        record = _record()

        written = await store.upsert(record)

        assert written is True
        kwargs = script.await_args.kwargs
        assert kwargs["keys"] == ["decision:tokenX:42"]
        assert json.loads(kwargs["args"][0]) == record.to_dict()
        assert kwargs["args"][1:] == [1209600, 3600]

    @pytest.mark.asyncio
    async def test_upsert_returns_false_when_stored_accepted(self) -> None:
        mock_redis, _ = _redis_with_script(0)
        assert await RedisDecisionStore(mock_redis).upsert(_record()) is False

    @pytest.mark.asyncio
    async def test_upsert_wraps_errors(self) -> None:
        mock_redis, script = _redis_with_script()
        script.side_effect = Exception("NOSCRIPT")
        with pytest.raises(RedisConnectionError, match="gravar"):
            await RedisDecisionStore(mock_redis).upsert(_record())
