"""Assign conversations to human agents or queue them.

Selection is a single greedy pass: eligible agents (online, fresh presence,
under their role's workload limit) are ordered same-sector first, then by
ascending active workload, and the first one wins. The write that assigns
the agent re-checks the workload inside the UPDATE, under a per-agent
advisory lock, so concurrent distributions cannot push an agent past its
limit.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select, text, update
from sqlalchemy.orm import Session, aliased

from zapdesk.config import settings
from zapdesk.logging_config import get_logger
from zapdesk.models import AgentProfile, Conversation
from zapdesk.services.conversation_service import current_status, get_conversation
from zapdesk.services.state_machine import (
    WORKLOAD_STATUSES,
    ConversationStatus,
    InvalidTransitionError,
    assign,
    enqueue,
)

logger = get_logger("distribution_service")

ONLINE_STATUS = "online"
DISTRIBUTABLE_ROLES = ("agente", "supervisor", "admin")

MSG_KEPT = "Conversa mantida com agente atual"
MSG_QUEUED_NO_AGENTS = "Conversa colocada na fila - nenhum agente disponível"
MSG_QUEUED_ALL_BUSY = "Conversa colocada na fila - todos os agentes ocupados"


class DistributionAction(str, Enum):
    KEPT = "mantido"
    ASSIGNED = "atribuido"
    QUEUED = "fila"


@dataclass
class AgentCandidate:
    agent: AgentProfile
    active_count: int
    limit: int

    @property
    def has_capacity(self) -> bool:
        return self.active_count < self.limit


@dataclass
class DistributionResult:
    action: DistributionAction
    message: str
    agent_id: Optional[UUID] = None
    agent_name: Optional[str] = None


def workload_limit_for_role(
    cargo: Optional[str],
    limits: Optional[dict[str, int]] = None,
    default: Optional[int] = None,
) -> int:
    """agente -> 5, supervisor -> 8, anything else -> 10 (configurable)."""
    limits = settings.workload_limits if limits is None else limits
    default = settings.default_workload_limit if default is None else default
    return limits.get(cargo or "", default)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_presence_fresh(agent: AgentProfile, now: datetime, window_minutes: Optional[int] = None) -> bool:
    """Online and seen within the presence window; stale presence counts as offline."""
    if agent.status != ONLINE_STATUS or agent.updated_at is None:
        return False
    window = settings.presence_window_minutes if window_minutes is None else window_minutes
    return _as_utc(agent.updated_at) > now - timedelta(minutes=window)


def count_active_conversations(db: Session, agent_ids: Iterable[UUID]) -> dict[UUID, int]:
    """Number of ativo/em-atendimento conversations per agent (missing agents have 0)."""
    agent_ids = list(agent_ids)
    if not agent_ids:
        return {}
    rows = (
        db.query(Conversation.agente_id, func.count(Conversation.id))
        .filter(Conversation.agente_id.in_(agent_ids), Conversation.status.in_(WORKLOAD_STATUSES))
        .group_by(Conversation.agente_id)
        .all()
    )
    counts = {agent_id: 0 for agent_id in agent_ids}
    for agent_id, count in rows:
        counts[agent_id] = count or 0
    return counts


def list_online_agents(db: Session, empresa_id: UUID) -> list[AgentProfile]:
    return (
        db.query(AgentProfile)
        .filter(
            AgentProfile.empresa_id == empresa_id,
            AgentProfile.cargo.in_(DISTRIBUTABLE_ROLES),
            AgentProfile.status == ONLINE_STATUS,
        )
        .all()
    )


def build_candidates(db: Session, agents: list[AgentProfile], now: datetime) -> list[AgentCandidate]:
    """Eligible agents with their current workload, in query order."""
    fresh = [agent for agent in agents if is_presence_fresh(agent, now)]
    counts = count_active_conversations(db, [agent.id for agent in fresh])

    candidates = []
    for agent in fresh:
        candidate = AgentCandidate(
            agent=agent,
            active_count=counts.get(agent.id, 0),
            limit=workload_limit_for_role(agent.cargo),
        )
        if candidate.has_capacity:
            candidates.append(candidate)
        else:
            logger.info(f"Agent {agent.id} at limit ({candidate.active_count}/{candidate.limit})")
    return candidates


def rank_candidates(candidates: list[AgentCandidate], setor: Optional[str]) -> list[AgentCandidate]:
    """Same sector first (stable partition), then least loaded first (stable sort)."""
    ordered = list(candidates)
    if setor:
        same_sector = [c for c in ordered if c.agent.setor == setor]
        other_sectors = [c for c in ordered if c.agent.setor != setor]
        ordered = same_sector + other_sectors
    return sorted(ordered, key=lambda c: c.active_count)


def lock_agents(db: Session, agent_ids: list[UUID]) -> None:
    """Take every candidate's advisory lock up front, always in the same order.

    Locks are transaction scoped, so a rejected candidate stays locked until
    commit. Acquiring them sorted keeps concurrent distributions from waiting
    on each other in a cycle.
    """
    for key in sorted({str(agent_id) for agent_id in agent_ids}):
        db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})


def try_assign(db: Session, conversation: Conversation, candidate: AgentCandidate, now: datetime) -> bool:
    """Assign only while the agent is still under the limit. Returns False if the guard rejected it.

    Expects the agent's lock to be held already (see lock_agents).
    """
    new_status = assign(current_status(conversation))

    counted = aliased(Conversation)
    active_count = (
        select(func.count(counted.id))
        .where(counted.agente_id == candidate.agent.id, counted.status.in_(WORKLOAD_STATUSES))
        .scalar_subquery()
    )
    stmt = (
        update(Conversation)
        .where(Conversation.id == conversation.id, active_count < candidate.limit)
        .values(agente_id=candidate.agent.id, status=new_status.value, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    result = db.execute(stmt)
    return result.rowcount > 0


def queue_conversation(db: Session, conversation: Conversation, now: datetime) -> None:
    conversation.status = enqueue(current_status(conversation)).value
    conversation.agente_id = None
    conversation.updated_at = now
    db.flush()


def _current_agent_still_eligible(db: Session, conversation: Conversation, now: datetime) -> Optional[AgentProfile]:
    agent = (
        db.query(AgentProfile)
        .filter(AgentProfile.id == conversation.agente_id, AgentProfile.empresa_id == conversation.empresa_id)
        .first()
    )
    if not agent:
        logger.info(f"Assigned agent {conversation.agente_id} not found, redistributing")
        return None

    if not is_presence_fresh(agent, now):
        logger.info(f"Agent {agent.id} offline, redistributing conversation {conversation.id}")
        return None

    active_count = count_active_conversations(db, [agent.id]).get(agent.id, 0)
    limit = workload_limit_for_role(agent.cargo)
    if active_count >= limit:
        logger.info(f"Agent {agent.id} at limit ({active_count}/{limit}), redistributing")
        return None

    return agent


def distribute_conversation(db: Session, conversation_id: UUID, now: Optional[datetime] = None) -> DistributionResult:
    """Keep, assign or queue a conversation. Caller commits.

    Raises ConversationNotFoundError for unknown ids and InvalidTransitionError
    for closed conversations.
    """
    now = now or datetime.now(timezone.utc)
    conversation = get_conversation(db, conversation_id)
    status = current_status(conversation)
    if status == ConversationStatus.FINALIZADO:
        raise InvalidTransitionError(status, ConversationStatus.EM_ATENDIMENTO)
    logger.info(f"Distributing conversation {conversation.id}", extra={"context": {"setor": conversation.setor}})

    if conversation.agente_id and conversation.status in WORKLOAD_STATUSES:
        agent = _current_agent_still_eligible(db, conversation, now)
        if agent:
            return DistributionResult(
                action=DistributionAction.KEPT,
                message=MSG_KEPT,
                agent_id=agent.id,
                agent_name=agent.nome,
            )

    agents = list_online_agents(db, conversation.empresa_id)
    if not agents:
        queue_conversation(db, conversation, now)
        logger.info(f"No agents online, conversation {conversation.id} queued")
        return DistributionResult(action=DistributionAction.QUEUED, message=MSG_QUEUED_NO_AGENTS)

    candidates = rank_candidates(build_candidates(db, agents, now), conversation.setor)
    lock_agents(db, [c.agent.id for c in candidates])
    for candidate in candidates:
        if try_assign(db, conversation, candidate, now):
            logger.info(
                f"Conversation {conversation.id} assigned to {candidate.agent.nome}",
                extra={"context": {"agente_id": str(candidate.agent.id), "carga": candidate.active_count}},
            )
            return DistributionResult(
                action=DistributionAction.ASSIGNED,
                message=f"Conversa atribuída para {candidate.agent.nome}",
                agent_id=candidate.agent.id,
                agent_name=candidate.agent.nome,
            )
        logger.warning(f"Agent {candidate.agent.id} filled up during assignment, trying next")

    queue_conversation(db, conversation, now)
    logger.info(f"All agents busy, conversation {conversation.id} queued")
    return DistributionResult(action=DistributionAction.QUEUED, message=MSG_QUEUED_ALL_BUSY)
