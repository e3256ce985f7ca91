from datetime import datetime, timezone

from sqlalchemy.orm import Session

from zapdesk.logging_config import get_logger
from zapdesk.models import AgentProfile, Conversation
from zapdesk.services.state_machine import ConversationStatus

logger = get_logger("health_service")


def check_and_heal_conversations(db: Session) -> dict:
    """Repair status/assignment invariants and report what was changed."""
    healed = []

    # em-atendimento requires an agent
    unassigned_in_service = (
        db.query(Conversation)
        .filter(
            Conversation.status == ConversationStatus.EM_ATENDIMENTO.value,
            Conversation.agente_id == None,  # noqa: E711
        )
        .all()
    )

    for conv in unassigned_in_service:
        conv.status = ConversationStatus.PENDENTE.value
        conv.updated_at = datetime.now(timezone.utc)
        healed.append(
            {
                "conversation_id": str(conv.id),
                "issue": "em-atendimento_no_agent",
                "action": "moved_to_pendente",
            }
        )
        logger.warning(f"Healed conversation {conv.id}: em-atendimento without agent")

    # pendente means nobody is assigned
    queued_with_agent = (
        db.query(Conversation)
        .filter(
            Conversation.status == ConversationStatus.PENDENTE.value,
            Conversation.agente_id != None,  # noqa: E711
        )
        .all()
    )

    for conv in queued_with_agent:
        old_agent = conv.agente_id
        conv.agente_id = None
        healed.append(
            {
                "conversation_id": str(conv.id),
                "issue": "pendente_with_agent",
                "action": f"cleared_agent (old='{old_agent}')",
            }
        )
        logger.warning(f"Healed conversation {conv.id}: pendente with agent {old_agent}")

    db.commit()

    return {
        "healed_count": len(healed),
        "details": healed,
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }


def get_system_health(db: Session) -> dict:
    """Conversation counts per status and agents online."""
    conversations = {
        status.value: db.query(Conversation).filter(Conversation.status == status.value).count()
        for status in (
            ConversationStatus.ATIVO,
            ConversationStatus.EM_ATENDIMENTO,
            ConversationStatus.PENDENTE,
        )
    }

    agents_online = db.query(AgentProfile).filter(AgentProfile.status == "online").count()

    return {
        "conversations": conversations,
        "agents_online": agents_online,
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }
