"""Configuração do pytest para o projeto call-dedup-engine."""

import sys
from pathlib import Path

import pytest

# Adiciona src/ ao PYTHONPATH para permitir imports absolutos
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings são cacheadas via lru_cache; cada teste lê o env do zero."""
    from config import settings

    getters = [
        settings.get_base_settings,
        settings.get_cache_settings,
        settings.get_decision_settings,
        settings.get_notifier_settings,
        settings.get_pipeline_settings,
        settings.get_rate_limit_settings,
        settings.get_tracking_settings,
    ]
    for getter in getters:
        getter.cache_clear()
    yield
    for getter in getters:
        getter.cache_clear()
