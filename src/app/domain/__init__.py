"""Modelos de domínio do motor de deduplicação de chamadas."""

from app.domain.evidence import EvidenceItem, SubjectBundle, parse_timestamp
from app.domain.outcomes import BundleOutcome, BundleState, ObserverOutcome
from app.domain.processing_record import (
    DecisionStatus,
    ProcessingRecord,
    merge_records,
)
from app.domain.tracking import TrackingEntry, tracking_map_key

__all__ = [
    "BundleOutcome",
    "BundleState",
    "DecisionStatus",
    "EvidenceItem",
    "ObserverOutcome",
    "ProcessingRecord",
    "SubjectBundle",
    "TrackingEntry",
    "merge_records",
    "parse_timestamp",
    "tracking_map_key",
]
