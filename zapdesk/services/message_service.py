from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from zapdesk.models import Conversation, Message
from zapdesk.schemas.evolution import MessageData
from zapdesk.services.contact_service import DEFAULT_CONTACT_NAME

SENDER_CUSTOMER = "cliente"
MESSAGE_TYPE_TEXT = "texto"


def find_message_by_gateway_id(db: Session, conversa_id: UUID, gateway_message_id: str) -> Optional[Message]:
    """Message of the conversation already stored for this gateway message id."""
    return (
        db.query(Message)
        .filter(
            Message.conversa_id == conversa_id,
            Message.message_metadata["messageId"].astext == gateway_message_id,
        )
        .first()
    )


def build_message_metadata(data: MessageData, instance: Optional[str] = None) -> dict:
    metadata = {
        "messageId": data.key.id,
        "timestamp": data.messageTimestamp,
        "remoteJid": data.key.remoteJid,
        "pushName": data.pushName,
    }
    if instance:
        metadata["instance"] = instance
    return metadata


def save_customer_message(
    db: Session,
    conversation: Conversation,
    data: MessageData,
    instance: Optional[str] = None,
) -> Message:
    """Save inbound customer message to database."""
    message = Message(
        conversa_id=conversation.id,
        conteudo=data.text,
        remetente_tipo=SENDER_CUSTOMER,
        remetente_nome=data.pushName or DEFAULT_CONTACT_NAME,
        tipo_mensagem=MESSAGE_TYPE_TEXT,
        message_metadata=build_message_metadata(data, instance),
        created_at=datetime.now(timezone.utc),
    )
    db.add(message)
    db.flush()
    return message
