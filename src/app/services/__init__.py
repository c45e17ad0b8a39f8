"""Serviços de aplicação.

Unidades reutilizáveis de orquestração (sem IO direto).
Implementações concretas de IO ficam em app/infra/.
"""

from app.services.decision_cache import CachedDecisionStore
from app.services.evidence_differ import diff_evidence, evidence_in_horizon, is_new_evidence
from app.services.filters import MinimumSourcesPredicate
from app.services.lookup_gateway import LookupGateway
from app.services.rate_governor import OutboundRateGovernor, TokenBucket
from app.services.reverse_index import ReverseIndexCache
from app.services.tracking_service import TrackingService

__all__ = [
    "CachedDecisionStore",
    "LookupGateway",
    "MinimumSourcesPredicate",
    "OutboundRateGovernor",
    "ReverseIndexCache",
    "TokenBucket",
    "TrackingService",
    "diff_evidence",
    "evidence_in_horizon",
    "is_new_evidence",
]
