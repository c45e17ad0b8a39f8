"""Bootstrap da aplicação — inicialização e wiring.

Este módulo é o composition root: configura logging, valida settings e
conecta implementações concretas aos protocolos.

Uso:
    from app.bootstrap import build_container, initialize_app

    # Na inicialização do serviço
    initialize_app()
    container = build_container()
    await container.start()
"""

from __future__ import annotations

import logging

from app.bootstrap.dependencies import AppContainer, build_container
from app.observability import get_correlation_id
from config.logging import configure_logging
from config.settings import (
    get_base_settings,
    get_cache_settings,
    get_decision_settings,
    get_notifier_settings,
    get_pipeline_settings,
    get_rate_limit_settings,
    get_tracking_settings,
)

STRICT_VALIDATION_ENVS = {"staging", "production"}

logger = logging.getLogger(__name__)


def initialize_app() -> None:
    """Inicializa logging estruturado JSON com correlation_id.

    Deve ser chamada uma vez no início do serviço.
    """
    base = get_base_settings()
    configure_logging(
        level=base.log_level,
        service_name=base.service_name,
        correlation_id_getter=get_correlation_id,
        environment=base.environment,
    )


def initialize_test_app() -> None:
    """Inicializa a aplicação para testes (nível DEBUG)."""
    configure_logging(
        level="DEBUG",
        service_name=f"{get_base_settings().service_name}_test",
        correlation_id_getter=get_correlation_id,
    )


def collect_settings_errors() -> list[str]:
    """Agrega erros de validação de todos os grupos de settings."""
    base = get_base_settings()
    errors: list[str] = []
    errors.extend(f"base: {error}" for error in base.validate())
    errors.extend(f"decision: {error}" for error in get_decision_settings().validate(base))
    errors.extend(f"tracking: {error}" for error in get_tracking_settings().validate(base))
    errors.extend(f"cache: {error}" for error in get_cache_settings().validate())
    errors.extend(f"pipeline: {error}" for error in get_pipeline_settings().validate())
    errors.extend(f"rate_limit: {error}" for error in get_rate_limit_settings().validate())
    errors.extend(f"notifier: {error}" for error in get_notifier_settings().validate())
    return errors


def validate_runtime_settings() -> None:
    """Valida settings obrigatórias no startup.

    Em `staging`/`production` falha rápido (ValueError) para impedir boot
    inválido. Em `development` mantém alerta sem bloquear execução local.
    """
    environment = get_base_settings().environment
    errors = collect_settings_errors()

    if not errors:
        logger.info(
            "settings_validated",
            extra={"component": "bootstrap", "result": "ok", "environment": environment},
        )
        return

    logger.warning(
        "settings_validation_failed",
        extra={
            "component": "bootstrap",
            "result": "failed",
            "environment": environment,
            "error_count": len(errors),
            "errors": errors,
        },
    )
    if environment in STRICT_VALIDATION_ENVS:
        details = "\n".join(f"- {error}" for error in errors)
        raise ValueError(f"Configuração inválida para {environment}:\n{details}")


__all__ = [
    "AppContainer",
    "build_container",
    "collect_settings_errors",
    "initialize_app",
    "initialize_test_app",
    "validate_runtime_settings",
]
