"""Bootstrap do gateway — inicialização e wiring.

Este módulo é o composition root: configura logging, valida settings e
expõe as factories que conectam implementações concretas aos protocolos.

Uso:
    from evolution_gateway.app.bootstrap import initialize_app, validate_runtime_settings

    initialize_app()
    validate_runtime_settings()
"""

from __future__ import annotations

import logging

from evolution_gateway.app.bootstrap.dependencies import (
    create_api_gateway,
    create_delivery_queue,
    create_rate_limit_store,
    create_rate_limiter,
    create_webhook_dispatcher,
    create_webhook_verifier,
)
from evolution_gateway.app.observability import get_correlation_id
from evolution_gateway.config.logging import configure_logging
from evolution_gateway.config.settings import (
    get_base_settings,
    get_evolution_settings,
    get_queue_settings,
    get_rate_limit_settings,
    get_webhook_settings,
)

STRICT_VALIDATION_ENVS = {"staging", "production"}

logger = logging.getLogger(__name__)


def initialize_app() -> None:
    """Configura logging estruturado JSON com correlation_id.

    Deve ser chamada uma vez no início do serviço.
    """
    base = get_base_settings()
    configure_logging(
        level=base.log_level,
        service_name=base.service_name,
        correlation_id_getter=get_correlation_id,
    )


def initialize_test_app() -> None:
    """Inicializa logging em nível DEBUG para testes."""
    configure_logging(
        level="DEBUG",
        service_name=f"{get_base_settings().service_name}_test",
        correlation_id_getter=get_correlation_id,
    )


def collect_settings_errors() -> list[str]:
    """Agrega erros de validação de todas as settings, prefixados por área."""
    base = get_base_settings()
    errors: list[str] = [f"base: {error}" for error in base.validate()]
    errors.extend(f"evolution: {error}" for error in get_evolution_settings().validate())
    errors.extend(f"rate_limit: {error}" for error in get_rate_limit_settings().validate(base))
    errors.extend(f"webhook: {error}" for error in get_webhook_settings().validate(base))
    errors.extend(
        f"queue: {error}"
        for error in get_queue_settings().validate(base.redis_url, base.is_development)
    )
    return errors


def validate_runtime_settings() -> None:
    """Valida settings obrigatórias no startup.

    Em `staging`/`production` falha rápido para impedir boot inválido.
    Em `development` mantém alerta sem bloquear execução local.

    Raises:
        RuntimeError: Configuração inválida em ambiente estrito
    """
    environment = get_base_settings().environment
    strict_mode = environment in STRICT_VALIDATION_ENVS
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
    if strict_mode:
        details = "\n".join(f"- {error}" for error in errors)
        raise RuntimeError(f"Configuração inválida para {environment}:\n{details}")


__all__ = [
    "collect_settings_errors",
    "create_api_gateway",
    "create_delivery_queue",
    "create_rate_limit_store",
    "create_rate_limiter",
    "create_webhook_dispatcher",
    "create_webhook_verifier",
    "initialize_app",
    "initialize_test_app",
    "validate_runtime_settings",
]
