from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

MESSAGES_UPSERT = "messages.upsert"
CONNECTION_UPDATE = "connection.update"
QRCODE_UPDATED = "qrcode.updated"


class MessageKey(BaseModel):
    remoteJid: str
    fromMe: bool = False
    id: Optional[str] = None


class ExtendedTextMessage(BaseModel):
    text: Optional[str] = None


class MessageContent(BaseModel):
    conversation: Optional[str] = None
    extendedTextMessage: Optional[ExtendedTextMessage] = None


class MessageData(BaseModel):
    key: MessageKey
    pushName: Optional[str] = None
    message: Optional[MessageContent] = None
    messageTimestamp: Optional[int] = None

    @property
    def text(self) -> str:
        """Plain text of the message; media and other types yield ''."""
        if not self.message:
            return ""
        if self.message.conversation:
            return self.message.conversation
        if self.message.extendedTextMessage and self.message.extendedTextMessage.text:
            return self.message.extendedTextMessage.text
        return ""


class EvolutionEvent(BaseModel):
    """Envelope posted by Evolution API for every webhook event."""

    model_config = ConfigDict(extra="ignore")

    event: str
    instance: Optional[str] = None
    data: Any = None
    destination: Optional[str] = None
    server_url: Optional[str] = None
    date_time: Optional[str] = None

    def is_customer_message(self) -> bool:
        if self.event != MESSAGES_UPSERT or not isinstance(self.data, dict):
            return False
        key = self.data.get("key")
        if not isinstance(key, dict) or not key.get("remoteJid"):
            return False
        return key.get("fromMe") is False or key.get("fromMe") is None


class WebhookResponse(BaseModel):
    success: bool
    message: str
    conversaId: Optional[UUID] = None
    mensagemId: Optional[UUID] = None
    chatbot: Optional[str] = None
    instance: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
