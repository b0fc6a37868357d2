"""Parse e validação do corpo de webhook da Evolution API."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from evolution_gateway.utils.errors import InvalidPayloadError


class EvolutionWebhookPayload(BaseModel):
    """Envelope mínimo: `{event, instance?, data}`; campos extras preservados."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event: str = Field(..., min_length=1, description="Tipo do evento (ex.: messages.upsert).")
    instance: str | None = Field(default=None, description="Nome da instância de origem.")
    instance_name: str | None = Field(
        default=None,
        alias="instanceName",
        description="Nome da instância (formato alternativo).",
    )
    data: Any = Field(default=None, description="Dados do evento.")

    @field_validator("event")
    @classmethod
    def _strip_event(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("event vazio")
        return stripped

    @field_validator("instance", "instance_name", mode="before")
    @classmethod
    def _coerce_instance(cls, value: Any) -> str | None:
        # Algumas versões enviam `instance` como objeto
        if isinstance(value, dict):
            value = value.get("instanceName") or value.get("name")
        return str(value) if value else None

    @property
    def resolved_instance(self) -> str | None:
        return self.instance or self.instance_name


def decode_webhook_body(raw_body: bytes) -> dict[str, Any]:
    """Decodifica JSON do corpo bruto.

    Raises:
        InvalidPayloadError: JSON inválido ou não-objeto
    """
    try:
        payload = json.loads(raw_body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidPayloadError("invalid_json") from exc

    if not isinstance(payload, dict):
        raise InvalidPayloadError("payload_not_object")
    return payload


def parse_webhook_payload(payload: dict[str, Any]) -> EvolutionWebhookPayload:
    """Valida o envelope do webhook.

    Raises:
        InvalidPayloadError: Campo `event` ausente ou vazio
    """
    try:
        return EvolutionWebhookPayload.model_validate(payload)
    except ValidationError as exc:
        fields = ",".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise InvalidPayloadError(f"invalid_payload:{fields or 'unknown'}") from exc
