"""Agregador de rotas — registra health e webhook da Evolution API.

Uso:
    from evolution_gateway.api.routes import create_api_router

    app = FastAPI()
    app.include_router(create_api_router())
"""

from __future__ import annotations

from fastapi import APIRouter

from evolution_gateway.api.routes.health.router import router as health_router
from evolution_gateway.api.routes.webhook import router as webhook_router
from evolution_gateway.config.settings import get_webhook_settings


def create_api_router(webhook_prefix: str | None = None) -> APIRouter:
    """Cria router principal com todos os sub-routers registrados.

    Args:
        webhook_prefix: Prefixo do webhook (padrão: EVOLUTION_WEBHOOK_ROUTE_PREFIX)

    Returns:
        APIRouter configurado com todos os endpoints.
    """
    prefix = (webhook_prefix or get_webhook_settings().route_prefix).rstrip("/")
    if not prefix:
        raise ValueError("Prefixo do webhook não pode ser a raiz")

    api_router = APIRouter()

    # Health checks (sem prefixo para /health e /ready na raiz)
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(webhook_router, prefix=prefix, tags=["webhook"])

    return api_router
