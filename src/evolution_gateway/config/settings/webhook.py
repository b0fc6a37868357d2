"""Settings do recebimento de webhooks da Evolution API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from evolution_gateway.config.settings.base.core import BaseSettings

ProcessingMode = Literal["sync", "queued"]

DEFAULT_SUBSCRIBED_EVENTS: tuple[str, ...] = (
    "APPLICATION_STARTUP",
    "QRCODE_UPDATED",
    "MESSAGES_SET",
    "MESSAGES_UPSERT",
    "MESSAGES_UPDATE",
    "MESSAGES_DELETE",
    "SEND_MESSAGE",
    "CONTACTS_SET",
    "CONTACTS_UPSERT",
    "CONTACTS_UPDATE",
    "PRESENCE_UPDATE",
    "CHATS_SET",
    "CHATS_UPSERT",
    "CHATS_UPDATE",
    "CHATS_DELETE",
    "GROUPS_UPSERT",
    "GROUP_UPDATE",
    "GROUP_PARTICIPANTS_UPDATE",
    "CONNECTION_UPDATE",
    "LABELS_EDIT",
    "LABELS_ASSOCIATION",
    "CALL",
    "TYPEBOT_START",
    "TYPEBOT_CHANGE_STATUS",
)


@dataclass(frozen=True)
class WebhookSettings:
    """Configurações do webhook inbound.

    Attributes:
        route_prefix: Prefixo da rota (ex.: /webhook)
        verify_signature: Exige assinatura HMAC válida
        secret: Secret compartilhado com o emissor
        tolerance_seconds: Janela anti-replay do timestamp
        require_timestamp: Recusa assinaturas sem header de timestamp
        allow_unsigned: Aceita webhooks sem secret configurado (apenas dev)
        processing_mode: sync (handlers inline) | queued (DeliveryQueue)
        subscribed_events: Eventos assinados por padrão
    """

    route_prefix: str = "/webhook"
    verify_signature: bool = True
    secret: str = ""
    tolerance_seconds: int = 300
    require_timestamp: bool = False
    allow_unsigned: bool = False
    processing_mode: ProcessingMode = "queued"
    subscribed_events: tuple[str, ...] = DEFAULT_SUBSCRIBED_EVENTS

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações do webhook.

        Args:
            base: BaseSettings para verificar ambiente.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.processing_mode not in ("sync", "queued"):
            errors.append(
                "EVOLUTION_WEBHOOK_PROCESSING_MODE deve ser 'sync' ou 'queued'"
            )

        if self.tolerance_seconds <= 0:
            errors.append("EVOLUTION_WEBHOOK_TOLERANCE deve ser > 0")

        if self.verify_signature and not self.secret and not self.allow_unsigned:
            errors.append(
                "EVOLUTION_WEBHOOK_SECRET não configurado com verificação ativa"
            )

        if self.allow_unsigned and not base.is_development:
            errors.append(
                "EVOLUTION_WEBHOOK_ALLOW_UNSIGNED proibido em staging/production"
            )

        if not self.route_prefix.startswith("/"):
            errors.append("EVOLUTION_WEBHOOK_ROUTE_PREFIX deve começar com '/'")

        return errors


def _load_webhook_from_env() -> WebhookSettings:
    """Carrega WebhookSettings de variáveis de ambiente."""
    mode_str = os.getenv("EVOLUTION_WEBHOOK_PROCESSING_MODE", "queued").lower()
    mode: ProcessingMode = "sync" if mode_str in ("sync", "inline") else "queued"
    events_str = os.getenv("EVOLUTION_WEBHOOK_EVENTS", "")
    events = (
        tuple(e.strip().upper() for e in events_str.split(",") if e.strip())
        if events_str
        else DEFAULT_SUBSCRIBED_EVENTS
    )
    return WebhookSettings(
        route_prefix=os.getenv("EVOLUTION_WEBHOOK_ROUTE_PREFIX", "/webhook"),
        verify_signature=os.getenv("EVOLUTION_VERIFY_WEBHOOK", "true").lower() in ("true", "1"),
        secret=os.getenv("EVOLUTION_WEBHOOK_SECRET", ""),
        tolerance_seconds=int(os.getenv("EVOLUTION_WEBHOOK_TOLERANCE", "300")),
        require_timestamp=os.getenv("EVOLUTION_WEBHOOK_REQUIRE_TIMESTAMP", "").lower()
        in ("true", "1"),
        allow_unsigned=os.getenv("EVOLUTION_WEBHOOK_ALLOW_UNSIGNED", "").lower()
        in ("true", "1"),
        processing_mode=mode,
        subscribed_events=events,
    )


@lru_cache(maxsize=1)
def get_webhook_settings() -> WebhookSettings:
    """Retorna instância cacheada de WebhookSettings."""
    return _load_webhook_from_env()
