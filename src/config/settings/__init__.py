"""Agregador de settings do call-dedup-engine.

Re-exporta todas as settings e funções de cada módulo.
Organização por domínio para isolamento de mudanças.
"""

from __future__ import annotations

# Base settings
from config.settings.base import (
    BaseSettings,
    DecisionSettings,
    Environment,
    EvaluationPolicy,
    StoreBackend,
    TrackingSettings,
    get_base_settings,
    get_decision_settings,
    get_tracking_settings,
)

# Collaborator settings
from config.settings.notifier import (
    DirectoryBackend,
    NotifierBackend,
    NotifierSettings,
    get_notifier_settings,
)

# Runtime settings
from config.settings.runtime import (
    CacheSettings,
    PipelineSettings,
    QueueFullMode,
    RateLimitSettings,
    get_cache_settings,
    get_pipeline_settings,
    get_rate_limit_settings,
)

__all__ = [
    # Base
    "BaseSettings",
    # Runtime
    "CacheSettings",
    "DecisionSettings",
    "DirectoryBackend",
    "Environment",
    "EvaluationPolicy",
    # Collaborators
    "NotifierBackend",
    "NotifierSettings",
    "PipelineSettings",
    "QueueFullMode",
    "RateLimitSettings",
    "StoreBackend",
    "TrackingSettings",
    "get_base_settings",
    "get_cache_settings",
    "get_decision_settings",
    "get_notifier_settings",
    "get_pipeline_settings",
    "get_rate_limit_settings",
    "get_tracking_settings",
]
