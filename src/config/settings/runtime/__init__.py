"""Agregador de settings de runtime (pipeline, cache, rate limit)."""

from __future__ import annotations

from config.settings.runtime.cache import CacheSettings, get_cache_settings
from config.settings.runtime.pipeline import (
    PipelineSettings,
    QueueFullMode,
    get_pipeline_settings,
)
from config.settings.runtime.rate_limit import (
    RateLimitSettings,
    get_rate_limit_settings,
)

__all__ = [
    "CacheSettings",
    "PipelineSettings",
    "QueueFullMode",
    "RateLimitSettings",
    "get_cache_settings",
    "get_pipeline_settings",
    "get_rate_limit_settings",
]
