"""Eventos de webhook da Evolution API.

`WebhookEventType` é um conjunto aberto: tipos não catalogados viram
UNKNOWN e continuam sendo despachados, preservando a string original em
`WebhookEvent.raw_event`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from evolution_gateway.api.connectors.evolution.event_id import compute_webhook_event_id

UNKNOWN_INSTANCE = "unknown"
GROUP_JID_SUFFIX = "@g.us"


class WebhookEventType(str, Enum):
    APPLICATION_STARTUP = "APPLICATION_STARTUP"
    QRCODE_UPDATED = "QRCODE_UPDATED"
    MESSAGES_SET = "MESSAGES_SET"
    MESSAGES_UPSERT = "MESSAGES_UPSERT"
    MESSAGES_UPDATE = "MESSAGES_UPDATE"
    MESSAGES_DELETE = "MESSAGES_DELETE"
    SEND_MESSAGE = "SEND_MESSAGE"
    CONTACTS_SET = "CONTACTS_SET"
    CONTACTS_UPSERT = "CONTACTS_UPSERT"
    CONTACTS_UPDATE = "CONTACTS_UPDATE"
    PRESENCE_UPDATE = "PRESENCE_UPDATE"
    CHATS_SET = "CHATS_SET"
    CHATS_UPSERT = "CHATS_UPSERT"
    CHATS_UPDATE = "CHATS_UPDATE"
    CHATS_DELETE = "CHATS_DELETE"
    GROUPS_UPSERT = "GROUPS_UPSERT"
    GROUP_UPDATE = "GROUP_UPDATE"
    GROUP_PARTICIPANTS_UPDATE = "GROUP_PARTICIPANTS_UPDATE"
    CONNECTION_UPDATE = "CONNECTION_UPDATE"
    LABELS_EDIT = "LABELS_EDIT"
    LABELS_ASSOCIATION = "LABELS_ASSOCIATION"
    CALL = "CALL"
    TYPEBOT_START = "TYPEBOT_START"
    TYPEBOT_CHANGE_STATUS = "TYPEBOT_CHANGE_STATUS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, value: str | None) -> WebhookEventType:
        """Normaliza "messages.upsert" / "MESSAGES_UPSERT"; desconhecido -> UNKNOWN."""
        normalized = (value or "").strip().upper().replace(".", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_message_event(self) -> bool:
        return self in _MESSAGE_EVENTS

    @property
    def is_connection_event(self) -> bool:
        return self in _CONNECTION_EVENTS

    @property
    def is_group_event(self) -> bool:
        return self in _GROUP_EVENTS

    @property
    def is_contact_event(self) -> bool:
        return self in _CONTACT_EVENTS

    @property
    def is_chat_event(self) -> bool:
        return self in _CHAT_EVENTS


_MESSAGE_EVENTS = frozenset(
    {
        WebhookEventType.MESSAGES_SET,
        WebhookEventType.MESSAGES_UPSERT,
        WebhookEventType.MESSAGES_UPDATE,
        WebhookEventType.MESSAGES_DELETE,
        WebhookEventType.SEND_MESSAGE,
    }
)
_CONNECTION_EVENTS = frozenset(
    {
        WebhookEventType.CONNECTION_UPDATE,
        WebhookEventType.QRCODE_UPDATED,
        WebhookEventType.APPLICATION_STARTUP,
    }
)
_GROUP_EVENTS = frozenset(
    {
        WebhookEventType.GROUPS_UPSERT,
        WebhookEventType.GROUP_UPDATE,
        WebhookEventType.GROUP_PARTICIPANTS_UPDATE,
    }
)
_CONTACT_EVENTS = frozenset(
    {
        WebhookEventType.CONTACTS_SET,
        WebhookEventType.CONTACTS_UPSERT,
        WebhookEventType.CONTACTS_UPDATE,
    }
)
_CHAT_EVENTS = frozenset(
    {
        WebhookEventType.CHATS_SET,
        WebhookEventType.CHATS_UPSERT,
        WebhookEventType.CHATS_UPDATE,
        WebhookEventType.CHATS_DELETE,
    }
)


def _dig(data: Any, path: str) -> Any:
    current = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _first(data: dict[str, Any], *paths: str) -> Any:
    for path in paths:
        value = _dig(data, path)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class WebhookEvent:
    """Webhook normalizado, imutável após a criação.

    Attributes:
        instance_name: Instância de origem
        event_type: Tipo normalizado (UNKNOWN para tipos não catalogados)
        raw_event: String original do campo `event`
        raw_payload: Payload completo recebido
        received_at: Instante de recebimento (UTC)
        signature_valid: Assinatura verificada com sucesso
    """

    instance_name: str
    event_type: WebhookEventType
    raw_event: str
    raw_payload: dict[str, Any] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    signature_valid: bool = False

    @property
    def event_name(self) -> str:
        """Nome usado no roteamento (raw_event normalizado para UNKNOWN)."""
        if self.event_type is WebhookEventType.UNKNOWN:
            return self.raw_event.strip().upper().replace(".", "_") or WebhookEventType.UNKNOWN.value
        return self.event_type.value

    @property
    def data(self) -> Any:
        return self.raw_payload.get("data")

    @property
    def event_id(self) -> str:
        return compute_webhook_event_id(self.raw_payload)

    @property
    def remote_jid(self) -> str | None:
        return _first(self.raw_payload, "data.key.remoteJid", "key.remoteJid", "remoteJid")

    @property
    def message_id(self) -> str | None:
        return _first(self.raw_payload, "data.key.id", "key.id", "messageId")

    @property
    def is_from_group(self) -> bool:
        jid = self.remote_jid
        return bool(jid) and GROUP_JID_SUFFIX in str(jid)

    @property
    def connection_state(self) -> str | None:
        return _first(self.raw_payload, "data.state", "state", "status")

    @property
    def qrcode(self) -> str | None:
        return _first(self.raw_payload, "data.qrcode.base64", "qrcode.base64", "base64")

    def to_dict(self) -> dict[str, Any]:
        """Serialização para o envelope da fila."""
        return {
            "instance_name": self.instance_name,
            "event_type": self.event_type.value,
            "raw_event": self.raw_event,
            "raw_payload": self.raw_payload,
            "received_at": self.received_at.isoformat(),
            "signature_valid": self.signature_valid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WebhookEvent:
        received_at = data.get("received_at")
        return cls(
            instance_name=str(data.get("instance_name") or UNKNOWN_INSTANCE),
            event_type=WebhookEventType.from_string(data.get("event_type")),
            raw_event=str(data.get("raw_event") or ""),
            raw_payload=dict(data.get("raw_payload") or {}),
            received_at=(
                datetime.fromisoformat(received_at) if received_at else datetime.now(UTC)
            ),
            signature_valid=bool(data.get("signature_valid", False)),
        )


def build_webhook_event(
    payload: dict[str, Any],
    instance_name: str | None = None,
    *,
    signature_valid: bool = False,
    received_at: datetime | None = None,
) -> WebhookEvent:
    """Cria WebhookEvent a partir do payload decodificado.

    Instância: `instance` > `instanceName` > path > "unknown".
    """
    raw_event = str(payload.get("event") or "")
    instance = payload.get("instance") or payload.get("instanceName") or instance_name
    if isinstance(instance, dict):
        instance = instance.get("instanceName") or instance.get("name")
    return WebhookEvent(
        instance_name=str(instance or UNKNOWN_INSTANCE),
        event_type=WebhookEventType.from_string(raw_event),
        raw_event=raw_event,
        raw_payload=payload,
        received_at=received_at or datetime.now(UTC),
        signature_valid=signature_valid,
    )
