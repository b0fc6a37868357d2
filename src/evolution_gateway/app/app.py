"""Entrypoint ASGI do gateway Evolution API.

Uso (produção):
    uvicorn --factory evolution_gateway.app.app:create_app --host 0.0.0.0 --port 8080

Uso (host com handlers próprios):
    from evolution_gateway.app.app import create_app

    app = create_app()
    dispatcher = app.state.webhook_dispatcher

    @dispatcher.on("MESSAGES_UPSERT")
    async def on_message(event): ...
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from evolution_gateway.api.routes import create_api_router
from evolution_gateway.app.bootstrap import (
    create_api_gateway,
    create_delivery_queue,
    create_webhook_dispatcher,
    initialize_app,
    validate_runtime_settings,
)
from evolution_gateway.app.bootstrap.clients import create_async_redis_client
from evolution_gateway.app.infra.queue import InMemoryDeliveryQueue
from evolution_gateway.app.webhooks import TaskRunner
from evolution_gateway.config.logging import get_logger
from evolution_gateway.config.settings import (
    get_base_settings,
    get_queue_settings,
    get_rate_limit_settings,
    get_webhook_settings,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from evolution_gateway.api.connectors.evolution import ApiGateway
    from evolution_gateway.app.protocols import DeliveryQueueProtocol
    from evolution_gateway.app.webhooks import WebhookDispatcher

# Inicializar logging ANTES de montar componentes que registram logs
initialize_app()

logger = get_logger(__name__)

SHUTDOWN_DRAIN_SECONDS = 30.0


def _uses_redis() -> bool:
    return get_queue_settings().backend == "redis" or (
        get_rate_limit_settings().enabled and get_rate_limit_settings().backend == "redis"
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gerencia ciclo de vida da aplicação.

    Startup:
    - Congela o registro de handlers
    - Liga a fila em memória ao TaskRunner

    Shutdown:
    - Aguarda tasks em memória (drain)
    - Fecha cliente HTTP e Redis
    """
    logger.info("app_starting", extra={"service": get_base_settings().service_name})
    dispatcher: WebhookDispatcher = app.state.webhook_dispatcher
    dispatcher.registry.freeze()

    queue = app.state.delivery_queue
    if isinstance(queue, InMemoryDeliveryQueue):
        queue.bind(TaskRunner(dispatcher, app.state.api_gateway))

    yield

    logger.info("app_shutting_down", extra={"service": get_base_settings().service_name})
    if isinstance(queue, InMemoryDeliveryQueue):
        await queue.drain(timeout_seconds=SHUTDOWN_DRAIN_SECONDS)
    await app.state.api_gateway.aclose()

    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        await redis_client.aclose()


def create_app(
    *,
    gateway: ApiGateway | None = None,
    dispatcher: WebhookDispatcher | None = None,
    queue: DeliveryQueueProtocol | None = None,
    validate_settings: bool = True,
) -> FastAPI:
    """Cria e configura a aplicação FastAPI.

    Componentes omitidos são criados a partir das settings.

    Args:
        gateway: ApiGateway pronto (testes ou host customizado)
        dispatcher: WebhookDispatcher pronto
        queue: DeliveryQueue usada pelo dispatcher no modo queued
        validate_settings: Valida settings antes de montar componentes

    Returns:
        Aplicação FastAPI configurada.
    """
    if validate_settings:
        validate_runtime_settings()

    if dispatcher is None:
        if queue is None and get_webhook_settings().processing_mode == "queued":
            queue = create_delivery_queue()
        dispatcher = create_webhook_dispatcher(queue)

    fastapi_app = FastAPI(
        title="Evolution Gateway",
        description="Gateway WhatsApp sobre a Evolution API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    fastapi_app.state.api_gateway = gateway or create_api_gateway()
    fastapi_app.state.webhook_dispatcher = dispatcher
    fastapi_app.state.delivery_queue = queue if queue is not None else dispatcher.queue
    fastapi_app.state.redis_client = create_async_redis_client() if _uses_redis() else None

    fastapi_app.include_router(create_api_router())

    logger.info("app_configured", extra={"mode": dispatcher.mode})
    return fastapi_app


def main() -> None:
    """Entrypoint para execução direta (desenvolvimento)."""
    import uvicorn

    logger.info("Starting evolution_gateway in development mode")
    uvicorn.run(
        "evolution_gateway.app.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
        reload=True,
    )


if __name__ == "__main__":
    main()
