"""Catálogo fechado de tipos de mensagem da Evolution API.

Cada tipo mapeia de forma exaustiva para o endpoint de envio e para a
categoria de rate limit. Novos tipos entram como novas variantes.
"""

from __future__ import annotations

from enum import Enum


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"
    CONTACT_ARRAY = "contactArray"
    POLL = "poll"
    LIST = "list"
    BUTTON = "button"
    TEMPLATE = "template"
    REACTION = "reaction"
    STATUS = "status"
    UNKNOWN = "unknown"

    @property
    def endpoint(self) -> str:
        """Endpoint `message/{endpoint}/{instance}`."""
        return _ENDPOINTS[self]

    @property
    def category(self) -> str:
        """Categoria de rate limit."""
        return "media" if self.is_media else "messages"

    @property
    def is_media(self) -> bool:
        return self in _MEDIA_TYPES

    @property
    def is_interactive(self) -> bool:
        return self in (MessageType.POLL, MessageType.LIST, MessageType.BUTTON)

    @property
    def path(self) -> str:
        return f"message/{self.endpoint}/{{instance}}"

    @classmethod
    def from_api(cls, value: str | None) -> MessageType:
        """Converte tipo reportado pela API (ex.: "imageMessage") ou UNKNOWN."""
        return _API_ALIASES.get((value or "").strip().lower(), cls.UNKNOWN)


_MEDIA_TYPES = frozenset(
    {
        MessageType.IMAGE,
        MessageType.VIDEO,
        MessageType.AUDIO,
        MessageType.DOCUMENT,
        MessageType.STICKER,
    }
)

_ENDPOINTS: dict[MessageType, str] = {
    MessageType.TEXT: "sendText",
    MessageType.IMAGE: "sendMedia",
    MessageType.VIDEO: "sendMedia",
    MessageType.DOCUMENT: "sendMedia",
    MessageType.AUDIO: "sendWhatsAppAudio",
    MessageType.STICKER: "sendSticker",
    MessageType.LOCATION: "sendLocation",
    MessageType.CONTACT: "sendContact",
    MessageType.CONTACT_ARRAY: "sendContact",
    MessageType.POLL: "sendPoll",
    MessageType.LIST: "sendList",
    MessageType.BUTTON: "sendButtons",
    MessageType.TEMPLATE: "sendTemplate",
    MessageType.REACTION: "sendReaction",
    MessageType.STATUS: "sendStatus",
    MessageType.UNKNOWN: "sendText",
}

_API_ALIASES: dict[str, MessageType] = {
    "text": MessageType.TEXT,
    "conversation": MessageType.TEXT,
    "extendedtextmessage": MessageType.TEXT,
    "image": MessageType.IMAGE,
    "imagemessage": MessageType.IMAGE,
    "video": MessageType.VIDEO,
    "videomessage": MessageType.VIDEO,
    "audio": MessageType.AUDIO,
    "audiomessage": MessageType.AUDIO,
    "ptt": MessageType.AUDIO,
    "document": MessageType.DOCUMENT,
    "documentmessage": MessageType.DOCUMENT,
    "sticker": MessageType.STICKER,
    "stickermessage": MessageType.STICKER,
    "location": MessageType.LOCATION,
    "locationmessage": MessageType.LOCATION,
    "contact": MessageType.CONTACT,
    "contactmessage": MessageType.CONTACT,
    "contactarray": MessageType.CONTACT_ARRAY,
    "contactsmessage": MessageType.CONTACT_ARRAY,
    "poll": MessageType.POLL,
    "pollcreationmessage": MessageType.POLL,
    "list": MessageType.LIST,
    "listmessage": MessageType.LIST,
    "button": MessageType.BUTTON,
    "buttonsmessage": MessageType.BUTTON,
    "template": MessageType.TEMPLATE,
    "templatemessage": MessageType.TEMPLATE,
    "reaction": MessageType.REACTION,
    "reactionmessage": MessageType.REACTION,
    "status": MessageType.STATUS,
}
