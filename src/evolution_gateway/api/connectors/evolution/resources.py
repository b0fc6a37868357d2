"""Recursos de alto nível sobre o ApiGateway.

Mensagens e instâncias: montam path/corpo e delegam ao gateway. Logging de
request/response (com segredos mascarados) acontece nesta camada.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from evolution_gateway.api.connectors.evolution.api_logging import log_request, log_response
from evolution_gateway.api.connectors.evolution.message_types import MessageType

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution.gateway import ApiGateway
    from evolution_gateway.api.connectors.evolution.http_base import OutboundResponse

PRESENCE_STATES = frozenset({"available", "unavailable", "composing", "recording", "paused"})


class _Resource:
    def __init__(
        self,
        gateway: ApiGateway,
        *,
        connection_name: str | None = None,
        instance_name: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._connection_name = connection_name
        self._instance_name = instance_name

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        category: str | None = None,
        instance_name: str | None = None,
        query: dict[str, Any] | None = None,
    ) -> OutboundResponse:
        connection = self._connection_name or self._gateway.registry.active_name
        instance = instance_name or self._instance_name
        log_request(method, path, connection, body, instance)
        response = await self._gateway.call(
            self._connection_name,
            method,
            path,
            body,
            category,
            instance_name=instance,
            query=query,
        )
        log_response(method, path, response)
        return response


class MessageResource(_Resource):
    """Envio de mensagens por `MessageType`."""

    async def send(
        self,
        message_type: MessageType | str,
        number: str,
        payload: dict[str, Any],
        *,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        """Envia mensagem do tipo informado.

        Args:
            message_type: Tipo (enum ou valor, ex.: "image")
            number: Número/JID do destinatário
            payload: Campos específicos do tipo (text, media, caption...)
            instance_name: Instância (padrão: a do recurso)
        """
        kind = MessageType(message_type)
        body = {"number": number, **payload}
        if kind.is_media and "mediatype" not in body and kind.endpoint == "sendMedia":
            body["mediatype"] = kind.value
        return await self._request(
            "POST", kind.path, body, category=kind.category, instance_name=instance_name
        )

    async def send_text(
        self,
        number: str,
        text: str,
        *,
        delay: int | None = None,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        payload: dict[str, Any] = {"text": text}
        if delay is not None:
            payload["delay"] = delay
        return await self.send(MessageType.TEXT, number, payload, instance_name=instance_name)

    async def send_media(
        self,
        number: str,
        media: str,
        media_type: MessageType | str = MessageType.IMAGE,
        *,
        caption: str | None = None,
        file_name: str | None = None,
        mimetype: str | None = None,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        """Envia mídia (URL ou base64)."""
        kind = MessageType(media_type)
        if not kind.is_media:
            raise ValueError(f"Tipo {kind.value} não é mídia")

        payload: dict[str, Any] = {"media": media}
        if kind is MessageType.AUDIO:
            payload = {"audio": media}
        elif kind is MessageType.STICKER:
            payload = {"sticker": media}
        if caption:
            payload["caption"] = caption
        if file_name:
            payload["fileName"] = file_name
        if mimetype:
            payload["mimetype"] = mimetype
        return await self.send(kind, number, payload, instance_name=instance_name)

    async def send_reaction(
        self,
        remote_jid: str,
        message_id: str,
        reaction: str,
        *,
        from_me: bool = False,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        """Reage a uma mensagem (reaction vazia remove a reação)."""
        body = {
            "key": {"remoteJid": remote_jid, "fromMe": from_me, "id": message_id},
            "reaction": reaction,
        }
        return await self._request(
            "POST",
            MessageType.REACTION.path,
            body,
            category=MessageType.REACTION.category,
            instance_name=instance_name,
        )

    async def mark_as_read(
        self,
        remote_jid: str,
        message_id: str,
        *,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        body = {"readMessages": [{"remoteJid": remote_jid, "id": message_id}]}
        return await self._request(
            "POST", "chat/markMessageAsRead/{instance}", body, instance_name=instance_name
        )

    async def send_presence(
        self,
        number: str,
        presence: str = "composing",
        *,
        delay: int = 1200,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        if presence not in PRESENCE_STATES:
            raise ValueError(f"Presence inválida: {presence}")
        body = {"number": number, "presence": presence, "delay": delay}
        return await self._request(
            "POST", "chat/sendPresence/{instance}", body, instance_name=instance_name
        )


class InstanceResource(_Resource):
    """Ciclo de vida de instâncias."""

    async def create(
        self,
        instance_name: str,
        *,
        qrcode: bool = True,
        integration: str = "WHATSAPP-BAILEYS",
        number: str | None = None,
        webhook_url: str | None = None,
        webhook_events: list[str] | None = None,
    ) -> OutboundResponse:
        body: dict[str, Any] = {
            "instanceName": instance_name,
            "qrcode": qrcode,
            "integration": integration,
        }
        if number:
            body["number"] = number
        if webhook_url:
            body["webhook"] = {
                "url": webhook_url,
                "byEvents": False,
                "events": webhook_events or [],
            }
        return await self._request("POST", "instance/create", body)

    async def connect(self, instance_name: str | None = None) -> OutboundResponse:
        return await self._request("GET", "instance/connect/{instance}", instance_name=instance_name)

    async def connection_state(self, instance_name: str | None = None) -> OutboundResponse:
        return await self._request(
            "GET", "instance/connectionState/{instance}", instance_name=instance_name
        )

    async def is_connected(self, instance_name: str | None = None) -> bool:
        response = await self.connection_state(instance_name)
        state = response.get("instance.state") or response.get("state")
        return state == "open"

    async def fetch_all(self, instance_name: str | None = None) -> OutboundResponse:
        query = {"instanceName": instance_name} if instance_name else None
        return await self._request("GET", "instance/fetchInstances", query=query)

    async def restart(self, instance_name: str | None = None) -> OutboundResponse:
        return await self._request("PUT", "instance/restart/{instance}", instance_name=instance_name)

    async def logout(self, instance_name: str | None = None) -> OutboundResponse:
        return await self._request("DELETE", "instance/logout/{instance}", instance_name=instance_name)

    async def delete(self, instance_name: str | None = None) -> OutboundResponse:
        return await self._request("DELETE", "instance/delete/{instance}", instance_name=instance_name)
