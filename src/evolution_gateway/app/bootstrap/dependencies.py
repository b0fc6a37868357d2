"""Factories dos componentes do gateway — criação de implementações concretas.

Escolhe backends (memória ou Redis) conforme as settings e conecta as
implementações aos protocolos.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from evolution_gateway.api.connectors.evolution import (
    ApiGateway,
    ConnectionRegistry,
    MemoryRateLimitStore,
    RateLimiter,
    WebhookVerifier,
)
from evolution_gateway.app.bootstrap.clients import create_async_redis_client
from evolution_gateway.app.infra.queue import InMemoryDeliveryQueue, RedisDeliveryQueue
from evolution_gateway.app.infra.stores import RedisRateLimitStore
from evolution_gateway.app.webhooks import HandlerRegistry, WebhookDispatcher
from evolution_gateway.config.settings import (
    get_base_settings,
    get_evolution_settings,
    get_queue_settings,
    get_rate_limit_settings,
    get_webhook_settings,
)

if TYPE_CHECKING:
    import httpx

    from evolution_gateway.app.protocols import DeliveryQueueProtocol, RateLimitStoreProtocol
    from evolution_gateway.config.settings import (
        QueueSettings,
        RateLimitSettings,
        WebhookSettings,
    )

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Rate Limit
# ──────────────────────────────────────────────────────────────────────────────


def create_rate_limit_store(settings: RateLimitSettings | None = None) -> RateLimitStoreProtocol:
    """Cria store de rate limit conforme EVOLUTION_RATE_LIMIT_BACKEND.

    - "memory": contadores por processo
    - "redis": contadores compartilhados entre réplicas
    """
    settings = settings or get_rate_limit_settings()

    if settings.backend == "redis":
        store: RateLimitStoreProtocol = RedisRateLimitStore(create_async_redis_client())
    elif settings.backend == "memory":
        store = MemoryRateLimitStore()
    else:
        msg = f"EVOLUTION_RATE_LIMIT_BACKEND inválido: {settings.backend}"
        raise ValueError(msg)

    logger.info("rate_limit_store_created", extra={"backend": settings.backend})
    return store


def create_rate_limiter(settings: RateLimitSettings | None = None) -> RateLimiter | None:
    """Cria RateLimiter (None quando desabilitado)."""
    settings = settings or get_rate_limit_settings()
    if not settings.enabled:
        logger.info("rate_limiter_disabled")
        return None
    return RateLimiter.from_settings(settings, create_rate_limit_store(settings))


# ──────────────────────────────────────────────────────────────────────────────
# Gateway
# ──────────────────────────────────────────────────────────────────────────────


def create_api_gateway(client: httpx.AsyncClient | None = None) -> ApiGateway:
    """Cria ApiGateway com registry, retry e rate limit das settings."""
    evolution = get_evolution_settings()
    rate_limit = get_rate_limit_settings()
    registry = ConnectionRegistry.from_settings(evolution)

    gateway = ApiGateway.from_settings(
        evolution,
        rate_limit,
        registry=registry,
        rate_limiter=create_rate_limiter(rate_limit),
        client=client,
    )
    logger.info(
        "api_gateway_created",
        extra={
            "connections": registry.available_connections(),
            "retry_enabled": evolution.retry_enabled,
            "rate_limit_enabled": rate_limit.enabled,
        },
    )
    return gateway


# ──────────────────────────────────────────────────────────────────────────────
# Fila
# ──────────────────────────────────────────────────────────────────────────────


def create_delivery_queue(settings: QueueSettings | None = None) -> DeliveryQueueProtocol:
    """Cria DeliveryQueue conforme EVOLUTION_QUEUE_BACKEND.

    - "memory": asyncio no próprio processo (dev/test)
    - "redis": workers dedicados consomem a lista
    """
    settings = settings or get_queue_settings()

    if settings.backend == "redis":
        queue: DeliveryQueueProtocol = RedisDeliveryQueue(
            create_async_redis_client(),
            settings.queue_name,
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
        )
    elif settings.backend == "memory":
        if not get_base_settings().is_development:
            logger.warning(
                "memory_queue_in_non_dev",
                extra={"backend": "memory", "environment": get_base_settings().environment},
            )
        queue = InMemoryDeliveryQueue(
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
            concurrency=settings.concurrency,
        )
    else:
        msg = f"EVOLUTION_QUEUE_BACKEND inválido: {settings.backend}"
        raise ValueError(msg)

    logger.info(
        "delivery_queue_created",
        extra={"backend": settings.backend, "queue": settings.queue_name},
    )
    return queue


# ──────────────────────────────────────────────────────────────────────────────
# Webhook
# ──────────────────────────────────────────────────────────────────────────────


def create_webhook_verifier(settings: WebhookSettings | None = None) -> WebhookVerifier | None:
    """Cria verificador HMAC (None quando a verificação está desligada)."""
    settings = settings or get_webhook_settings()
    if not settings.verify_signature:
        logger.warning("webhook_signature_verification_disabled")
        return None
    return WebhookVerifier(
        settings.secret,
        settings.tolerance_seconds,
        allow_unsigned=settings.allow_unsigned,
        require_timestamp=settings.require_timestamp,
    )


def create_webhook_dispatcher(
    queue: DeliveryQueueProtocol | None = None,
    registry: HandlerRegistry | None = None,
    settings: WebhookSettings | None = None,
) -> WebhookDispatcher:
    """Cria WebhookDispatcher no modo configurado (sync | queued)."""
    settings = settings or get_webhook_settings()
    if settings.processing_mode == "queued" and queue is None:
        queue = create_delivery_queue()

    dispatcher = WebhookDispatcher(
        registry,
        verifier=create_webhook_verifier(settings),
        queue=queue,
        mode=settings.processing_mode,
        subscribed_events=settings.subscribed_events,
    )
    logger.info(
        "webhook_dispatcher_created",
        extra={"mode": settings.processing_mode, "route_prefix": settings.route_prefix},
    )
    return dispatcher
