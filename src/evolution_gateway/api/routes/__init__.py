"""Rotas HTTP — adapters de entrada.

- routes/health/: health checks e readiness
- routes/webhook.py: recebimento de webhooks da Evolution API
- router.py: registra todos os routers no app principal
"""

from __future__ import annotations

from evolution_gateway.api.routes.router import create_api_router

__all__ = ["create_api_router"]
