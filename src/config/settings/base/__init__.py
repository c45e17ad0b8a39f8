"""Agregador de settings base.

Re-exporta todas as settings base para uso externo.
"""

from __future__ import annotations

from config.settings.base.core import (
    BaseSettings,
    Environment,
    get_base_settings,
)
from config.settings.base.decision import (
    DecisionSettings,
    EvaluationPolicy,
    StoreBackend,
    get_decision_settings,
)
from config.settings.base.tracking import (
    TrackingSettings,
    get_tracking_settings,
)

__all__ = [
    # Core
    "BaseSettings",
    # Decision
    "DecisionSettings",
    # Types
    "Environment",
    "EvaluationPolicy",
    "StoreBackend",
    # Tracking
    "TrackingSettings",
    "get_base_settings",
    "get_decision_settings",
    "get_tracking_settings",
]
