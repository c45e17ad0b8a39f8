"""Endpoints de ingestão de evidência e tracking de valor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException, Request, status

from api.routes.ingest.schemas import (
    BundleAcceptedResponse,
    BundleRequest,
    TrackingRequest,
    TrackingResponse,
    ValueRequest,
    ValueResponse,
)
from utils.errors import MalformedEvidenceError, QueueFullError

if TYPE_CHECKING:
    from app.bootstrap import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter()


def _container(request: Request) -> AppContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not_ready")
    return container


@router.post(
    "/bundles",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BundleAcceptedResponse,
)
async def ingest_bundle(body: BundleRequest, request: Request) -> BundleAcceptedResponse:
    """Enfileira bundle para avaliação assíncrona."""
    pipeline = _container(request).pipeline
    try:
        bundle = await pipeline.enqueue_payload(body.model_dump())
    except MalformedEvidenceError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except QueueFullError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="queue_full",
        ) from exc
    return BundleAcceptedResponse(
        accepted=True,
        skipped=bundle.skipped_items,
        queue_depth=pipeline.queue_depth,
    )


@router.post(
    "/tracking",
    status_code=status.HTTP_201_CREATED,
    response_model=TrackingResponse,
)
async def start_tracking(body: TrackingRequest, request: Request) -> TrackingResponse:
    """Inicia (ou reinicia) tracking de valor para um par."""
    entry = await _container(request).tracking_service.track(
        body.subject_id,
        body.observer_id,
        body.baseline_value,
    )
    return TrackingResponse(
        subject_id=entry.subject_id,
        observer_id=entry.observer_id,
        baseline_value=entry.baseline_value,
        last_notified_multiple=entry.last_notified_multiple,
    )


@router.post("/subjects/{subject_id}/value", response_model=ValueResponse)
async def observe_value(subject_id: str, body: ValueRequest, request: Request) -> ValueResponse:
    """Processa novo valor do subject e notifica múltiplos atingidos."""
    notified = await _container(request).tracking_service.observe_value(subject_id, body.value)
    return ValueResponse(subject_id=subject_id, notified=notified)


@router.get("/stats")
async def stats(request: Request) -> dict[str, Any]:
    """Snapshot de contadores do pipeline, caches e índice."""
    return _container(request).stats()
