"""Endpoints de health check e readiness."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings import get_base_settings

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Resposta do health check."""

    status: str
    service: str
    timestamp: str
    version: str = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe — verifica se o serviço está rodando."""
    return HealthResponse(
        status="healthy",
        service=get_base_settings().service_name,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe: workers ativos e Redis (quando configurado) respondendo."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        return JSONResponse(
            content={"status": "not_ready", "checks": {}, "timestamp": _now()},
            status_code=503,
        )

    checks = await container.check_ready()
    ready = bool(checks["pipeline"]) and checks.get("redis", "ok") == "ok"
    if not ready:
        logger.warning("readiness_failed", extra={"checks": checks})
    payload = {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "timestamp": _now(),
    }
    return JSONResponse(content=payload, status_code=200 if ready else 503)


def _now() -> str:
    return datetime.now(UTC).isoformat()
