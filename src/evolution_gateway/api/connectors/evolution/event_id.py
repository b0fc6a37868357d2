"""Identificador estável de eventos de webhook (idempotência dos consumidores)."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def compute_webhook_event_id(payload: dict[str, Any]) -> str:
    """Usa o id da mensagem quando existe; senão hash do payload.

    Args:
        payload: Payload decodificado do webhook

    Returns:
        "{event}:{message_id}" ou "payload:{sha256}"
    """
    data = payload.get("data")
    if isinstance(data, dict):
        key = data.get("key")
        if isinstance(key, dict) and key.get("id"):
            event = str(payload.get("event") or "unknown").lower()
            return f"{event}:{key['id']}"

    digest = hashlib.sha256(
        json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    ).hexdigest()
    return f"payload:{digest}"
