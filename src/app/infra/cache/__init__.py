"""Caches em processo (otimização, nunca fonte de verdade)."""

from __future__ import annotations

from app.infra.cache.layered_cache import CacheEntry, LayeredCache

__all__ = ["CacheEntry", "LayeredCache"]
