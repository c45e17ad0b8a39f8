"""Schemas HTTP das rotas de ingestão e tracking."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class BundleRequest(BaseModel):
    """Bundle de evidência de um subject.

    Itens de evidência chegam crus: a validação por item acontece no
    domínio para que itens malformados sejam descartados sem derrubar
    o bundle.
    """

    subject_id: str = Field(min_length=1)
    evidence: list[Any] = Field(default_factory=list)


class BundleAcceptedResponse(BaseModel):
    accepted: bool = True
    skipped: int = 0
    queue_depth: int = 0


class TrackingRequest(BaseModel):
    subject_id: str = Field(min_length=1)
    observer_id: str = Field(min_length=1)
    baseline_value: float = Field(gt=0)


class TrackingResponse(BaseModel):
    subject_id: str
    observer_id: str
    baseline_value: float
    last_notified_multiple: int


class ValueRequest(BaseModel):
    value: float = Field(ge=0)


class ValueResponse(BaseModel):
    subject_id: str
    notified: list[str]
