from enum import Enum


class ConversationStatus(str, Enum):
    ATIVO = "ativo"
    EM_ATENDIMENTO = "em-atendimento"
    PENDENTE = "pendente"
    FINALIZADO = "finalizado"


# Ingestion reuses any of these instead of opening a new conversation.
OPEN_STATUSES = (
    ConversationStatus.ATIVO.value,
    ConversationStatus.EM_ATENDIMENTO.value,
    ConversationStatus.PENDENTE.value,
)

# Conversations in these statuses count toward an agent's workload.
WORKLOAD_STATUSES = (
    ConversationStatus.ATIVO.value,
    ConversationStatus.EM_ATENDIMENTO.value,
)

VALID_TRANSITIONS = {
    ConversationStatus.ATIVO: [
        ConversationStatus.EM_ATENDIMENTO,
        ConversationStatus.PENDENTE,
        ConversationStatus.FINALIZADO,
    ],
    ConversationStatus.PENDENTE: [
        ConversationStatus.EM_ATENDIMENTO,
        ConversationStatus.PENDENTE,
        ConversationStatus.FINALIZADO,
    ],
    ConversationStatus.EM_ATENDIMENTO: [
        ConversationStatus.EM_ATENDIMENTO,
        ConversationStatus.PENDENTE,
        ConversationStatus.FINALIZADO,
    ],
    ConversationStatus.FINALIZADO: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_status: ConversationStatus, to_status: ConversationStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def can_transition(from_status: ConversationStatus, to_status: ConversationStatus) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_status, [])
    return to_status in allowed


def transition(from_status: ConversationStatus, to_status: ConversationStatus) -> ConversationStatus:
    """Perform status transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(from_status, to_status)
    return to_status


def assign(current_status: ConversationStatus) -> ConversationStatus:
    """Agent picked: conversation goes to em-atendimento."""
    return transition(current_status, ConversationStatus.EM_ATENDIMENTO)


def enqueue(current_status: ConversationStatus) -> ConversationStatus:
    """No agent available: conversation waits in the queue."""
    return transition(current_status, ConversationStatus.PENDENTE)
