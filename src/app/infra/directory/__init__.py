"""Diretórios de observers."""

from app.infra.directory.observer_directory import (
    OBSERVERS_KEY,
    RedisObserverDirectory,
    StaticObserverDirectory,
)

__all__ = ["OBSERVERS_KEY", "RedisObserverDirectory", "StaticObserverDirectory"]
