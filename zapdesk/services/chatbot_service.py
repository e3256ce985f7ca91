from enum import Enum
from typing import Optional
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from zapdesk.config import settings
from zapdesk.logging_config import get_logger
from zapdesk.models import ChatbotSession
from zapdesk.schemas.chatbot import FlowEngineRequest
from zapdesk.services.alert_service import alert_chatbot_failed
from zapdesk.services.result import Result

logger = get_logger("chatbot_service")

SESSION_ACTIVE = "ativo"
WEBHOOK_SOURCE = "evolution_webhook"


class ChatbotOutcome(str, Enum):
    STARTED = "iniciado"
    CONTINUED = "continuado"
    NO_SESSION = "sem_sessao"
    FAILED = "falhou"


def has_active_session(db: Session, conversa_id: UUID) -> bool:
    session = (
        db.query(ChatbotSession)
        .filter(ChatbotSession.conversa_id == conversa_id, ChatbotSession.status == SESSION_ACTIVE)
        .first()
    )
    return session is not None


def call_flow_engine(request: FlowEngineRequest) -> Result[dict]:
    """POST one instruction to the chatbot flow engine."""
    headers = {"Content-Type": "application/json"}
    if settings.supabase_service_role_key:
        headers["Authorization"] = f"Bearer {settings.supabase_service_role_key}"

    try:
        with httpx.Client(timeout=settings.http_timeout_seconds) as client:
            response = client.post(
                settings.flow_engine_url,
                json=request.model_dump(mode="json", exclude_none=True),
                headers=headers,
            )
    except httpx.HTTPError as e:
        return Result.failure(f"Flow engine unreachable: {e}", "flow_engine_unreachable")

    if response.status_code >= 400:
        return Result.failure(
            f"Flow engine returned {response.status_code}: {response.text[:200]}",
            "flow_engine_error",
        )

    try:
        body = response.json()
    except ValueError:
        body = {"raw": response.text[:200]}
    return Result.success(body)


def trigger_chatbot(
    db: Session,
    conversa_id: UUID,
    is_new_conversation: bool,
    message_text: Optional[str],
) -> Result[ChatbotOutcome]:
    """Start the flow for new conversations, advance it when a session is active, else do nothing.

    Failures are returned, not raised.
    """
    if is_new_conversation:
        request = FlowEngineRequest(conversaId=conversa_id, iniciarFluxo=True, source=WEBHOOK_SOURCE)
        outcome = ChatbotOutcome.STARTED
    else:
        try:
            session_active = has_active_session(db, conversa_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Chatbot session lookup failed for conversation {conversa_id}: {e}")
            alert_chatbot_failed(conversa_id, "chatbot_session_lookup", str(e))
            return Result.failure(str(e), "chatbot_session_lookup")

        if not session_active:
            logger.info(f"No active chatbot session for conversation {conversa_id}, leaving for agents")
            return Result.skip(ChatbotOutcome.NO_SESSION.value)

        request = FlowEngineRequest(conversaId=conversa_id, mensagemCliente=message_text or "", source=WEBHOOK_SOURCE)
        outcome = ChatbotOutcome.CONTINUED

    result = call_flow_engine(request)
    if not result.ok:
        logger.error(
            f"Chatbot {outcome.value} failed for conversation {conversa_id}: {result.error}",
            extra={"context": {"conversa_id": str(conversa_id), "error_code": result.error_code}},
        )
        alert_chatbot_failed(conversa_id, result.error_code, result.error)
        return Result.failure(result.error, result.error_code)

    logger.info(f"Chatbot {outcome.value} for conversation {conversa_id}")
    return Result.success(outcome)


def describe_outcome(result: Result[ChatbotOutcome]) -> str:
    if not result.ok:
        return ChatbotOutcome.FAILED.value
    if result.skipped:
        return result.error_code or ChatbotOutcome.NO_SESSION.value
    return result.value.value
