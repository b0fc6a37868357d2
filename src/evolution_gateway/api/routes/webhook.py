"""Endpoints de webhook da Evolution API.

Endpoints:
- POST {prefix}: recebimento de eventos (instância no corpo)
- POST {prefix}/{instance_name}: recebimento com instância no path
- GET {prefix}/health: status do receptor

Segurança:
- Assinatura HMAC verificada sobre o corpo bruto antes do parse
- 200 apenas quando o evento foi tratado ou enfileirado; qualquer outro
  status sinaliza ao emissor que deve reenviar
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from evolution_gateway.app.observability import (
    CORRELATION_HEADER,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from evolution_gateway.app.webhooks import DispatchState
from evolution_gateway.utils.errors import (
    DeliveryQueueError,
    InvalidPayloadError,
    InvalidSignatureError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_SUCCESS_MESSAGES = {
    DispatchState.HANDLED: "Webhook processado",
    DispatchState.QUEUED: "Webhook enfileirado",
}


def _error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": error,
            "correlation_id": get_correlation_id(),
        },
    )


async def _receive(request: Request, instance_name: str | None) -> JSONResponse:
    token = set_correlation_id(request.headers.get(CORRELATION_HEADER))
    try:
        dispatcher = getattr(request.app.state, "webhook_dispatcher", None)
        if dispatcher is None:
            logger.error("webhook_dispatcher_unavailable")
            return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "dispatcher_unavailable")

        raw_body = await request.body()
        logger.info(
            "webhook_received",
            extra={"instance": instance_name, "payload_size": len(raw_body)},
        )
        outcome = await dispatcher.process(
            raw_body,
            instance_name,
            headers=dict(request.headers),
        )

        if outcome.accepted:
            body: dict[str, Any] = {
                "status": "success",
                "message": _SUCCESS_MESSAGES[outcome.state],
                "correlation_id": get_correlation_id(),
            }
            if outcome.partial_failure:
                logger.warning(
                    "webhook_partial_failure",
                    extra={
                        "event_type": outcome.event.event_name if outcome.event else None,
                        "failures": len(outcome.failures),
                    },
                )
            return JSONResponse(status_code=status.HTTP_200_OK, content=body)

        error = outcome.error
        if isinstance(error, InvalidSignatureError):
            return _error_response(status.HTTP_401_UNAUTHORIZED, str(error))
        if isinstance(error, InvalidPayloadError):
            return _error_response(status.HTTP_400_BAD_REQUEST, str(error))
        if isinstance(error, DeliveryQueueError):
            return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "queue_unavailable")
        logger.error(
            "webhook_failed",
            extra={"error_type": type(error).__name__ if error else None},
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "processing_failed")
    finally:
        reset_correlation_id(token)


@router.get("/health")
async def webhook_health(request: Request) -> dict[str, Any]:
    """Status do receptor de webhooks."""
    dispatcher = getattr(request.app.state, "webhook_dispatcher", None)
    return {
        "status": "ok" if dispatcher is not None else "unavailable",
        "mode": dispatcher.mode if dispatcher is not None else None,
        "handlers": len(dispatcher.registry) if dispatcher is not None else 0,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.post("", response_model=None)
async def receive_webhook(request: Request) -> JSONResponse:
    """Recebe evento com a instância informada no corpo."""
    return await _receive(request, None)


@router.post("/{instance_name}", response_model=None)
async def receive_instance_webhook(instance_name: str, request: Request) -> JSONResponse:
    """Recebe evento com a instância informada no path."""
    return await _receive(request, instance_name)
