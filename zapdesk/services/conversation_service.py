from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from zapdesk.logging_config import get_logger
from zapdesk.models import Contact, Conversation
from zapdesk.services.state_machine import OPEN_STATUSES, ConversationStatus

logger = get_logger("conversation_service")

DEFAULT_CHANNEL = "whatsapp"
DEFAULT_PRIORITY = "normal"


class ConversationNotFoundError(Exception):
    def __init__(self, conversation_id):
        self.conversation_id = conversation_id
        self.message = "Conversa não encontrada"
        super().__init__(f"Conversation {conversation_id} not found")


def get_conversation(db: Session, conversation_id: UUID) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise ConversationNotFoundError(conversation_id)
    return conversation


def find_open_conversation(db: Session, contato_id: UUID) -> Optional[Conversation]:
    """Most recently updated non-closed conversation of the contact."""
    return (
        db.query(Conversation)
        .filter(Conversation.contato_id == contato_id, Conversation.status.in_(OPEN_STATUSES))
        .order_by(Conversation.updated_at.desc())
        .first()
    )


def get_or_create_conversation(db: Session, contact: Contact) -> Tuple[Conversation, bool]:
    """Find open conversation or create new one. Returns (conversation, created)."""
    conversation = find_open_conversation(db, contact.id)
    if conversation:
        return conversation, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        contato_id=contact.id,
        empresa_id=contact.empresa_id,
        status=ConversationStatus.ATIVO.value,
        canal=DEFAULT_CHANNEL,
        prioridade=DEFAULT_PRIORITY,
        created_at=now,
        updated_at=now,
    )
    db.add(conversation)
    db.flush()
    logger.info(f"Created conversation {conversation.id} for contact {contact.id}")
    return conversation, True


def touch_conversation(db: Session, conversation: Conversation) -> None:
    conversation.updated_at = datetime.now(timezone.utc)
    db.flush()


def current_status(conversation: Conversation) -> ConversationStatus:
    """Status as enum; rows with an empty or unknown status are treated as ativo."""
    try:
        return ConversationStatus(conversation.status)
    except ValueError:
        logger.warning(f"Conversation {conversation.id} has unexpected status {conversation.status!r}")
        return ConversationStatus.ATIVO
