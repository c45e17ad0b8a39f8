"""Protocolos e contratos do core da aplicação."""

from .collaborators import FilterPredicate, NotificationSink, ObserverDirectory
from .decision_audit_store import DecisionAuditStoreProtocol
from .decision_store import DecisionStoreProtocol
from .tracking_store import TrackingStoreProtocol

__all__ = [
    "DecisionAuditStoreProtocol",
    "DecisionStoreProtocol",
    "FilterPredicate",
    "NotificationSink",
    "ObserverDirectory",
    "TrackingStoreProtocol",
]
