"""Evolution API webhook: customer messages and instance connection events."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import ClientDisconnect

from zapdesk.config import settings
from zapdesk.database import get_db
from zapdesk.logging_config import WebhookLogger, get_logger, get_request_logger
from zapdesk.models import Conversation
from zapdesk.schemas.evolution import (
    CONNECTION_UPDATE,
    QRCODE_UPDATED,
    ErrorResponse,
    EvolutionEvent,
    MessageData,
    WebhookResponse,
)
from zapdesk.services.alert_service import alert_ingestion_failed
from zapdesk.services.chatbot_service import describe_outcome, trigger_chatbot
from zapdesk.services.contact_service import (
    TenantNotFoundError,
    get_or_create_contact,
    normalize_phone,
    resolve_company_id,
)
from zapdesk.services.conversation_service import (
    ConversationNotFoundError,
    get_or_create_conversation,
    touch_conversation,
)
from zapdesk.services.distribution_service import distribute_conversation
from zapdesk.services.instance_service import apply_connection_event
from zapdesk.services.message_service import find_message_by_gateway_id, save_customer_message
from zapdesk.services.n8n_service import (
    EVENT_MESSAGE_RECEIVED,
    build_message_received_payload,
    forward_event,
)
from zapdesk.services.state_machine import InvalidTransitionError

logger = get_logger("webhook")

router = APIRouter()

MSG_IGNORED = "Evento ignorado"
MSG_DUPLICATE = "Mensagem duplicada ignorada"
MSG_PROCESSED = "Mensagem processada com sucesso"


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=message).model_dump(),
    )


async def _parse_event(request: Request) -> Optional[EvolutionEvent]:
    try:
        payload = await request.json()
    except ClientDisconnect:
        logger.info("Webhook client disconnected during read")
        return None
    except ValueError as exc:
        logger.warning("Webhook payload is not valid JSON", extra={"context": {"error": str(exc)}})
        return None

    if not isinstance(payload, dict):
        logger.warning("Webhook payload is not an object")
        return None

    try:
        return EvolutionEvent.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Webhook payload has no event", extra={"context": {"errors": exc.error_count()}})
        return None


def _handle_connection_event(db: Session, event: EvolutionEvent, log: WebhookLogger):
    try:
        apply_connection_event(db, event.instance, event.event, event.data)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error(f"Failed to apply {event.event}: {e}")
        return _error_response(str(e))

    return WebhookResponse(success=True, message=f"Evento {event.event} processado", instance=event.instance)


def _forward_to_n8n(
    db: Session,
    empresa_id: UUID,
    payload: dict,
    log: WebhookLogger,
) -> None:
    try:
        forward_event(db, empresa_id, EVENT_MESSAGE_RECEIVED, payload)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.warning(f"Could not record n8n execution: {e}")


def _distribute_best_effort(db: Session, conversation_id: UUID, log: WebhookLogger) -> None:
    """Hand an unassigned conversation without chatbot session to the agents."""
    try:
        agente_id = db.query(Conversation.agente_id).filter(Conversation.id == conversation_id).scalar()
        if agente_id is not None:
            return
        result = distribute_conversation(db, conversation_id)
        db.commit()
        log.info(f"Inbound distribution: {result.action.value}", context={"conversa_id": str(conversation_id)})
    except (SQLAlchemyError, ConversationNotFoundError, InvalidTransitionError) as e:
        db.rollback()
        log.warning(f"Inbound distribution failed: {e}", context={"conversa_id": str(conversation_id)})


def _handle_customer_message(db: Session, event: EvolutionEvent, data: MessageData, log: WebhookLogger):
    telefone = normalize_phone(data.key.remoteJid)
    if not telefone:
        log.info("Message without a usable phone number ignored")
        return WebhookResponse(success=True, message=MSG_IGNORED)

    try:
        empresa_id = resolve_company_id(db, event.instance)
        contact = get_or_create_contact(db, empresa_id, telefone, data.pushName)
        conversation, is_new = get_or_create_conversation(db, contact)

        if not is_new:
            existing = find_message_by_gateway_id(db, conversation.id, data.key.id) if data.key.id else None
            if existing:
                log.info(f"Duplicate gateway message {data.key.id} ignored")
                return WebhookResponse(
                    success=True,
                    message=MSG_DUPLICATE,
                    conversaId=conversation.id,
                    mensagemId=existing.id,
                )
            touch_conversation(db, conversation)

        message = save_customer_message(db, conversation, data, event.instance)
        conversation_id = conversation.id
        message_id = message.id
        db.commit()
    except TenantNotFoundError as e:
        db.rollback()
        log.error(e.message)
        alert_ingestion_failed(event.instance, e.message)
        return _error_response(e.message)
    except SQLAlchemyError as e:
        db.rollback()
        log.error(f"Webhook ingestion failed: {e}", context={"telefone": telefone})
        alert_ingestion_failed(event.instance, str(e))
        return _error_response(str(e))

    log.info(
        f"Stored message {message_id}",
        context={"conversa_id": str(conversation_id), "nova_conversa": is_new},
    )

    chatbot_result = trigger_chatbot(db, conversation_id, is_new, data.text)

    payload = build_message_received_payload(
        conversation_id, message_id, telefone, data.pushName, data.text, event.instance
    )
    _forward_to_n8n(db, empresa_id, payload, log)

    if settings.distribute_on_inbound and not is_new and chatbot_result.skipped:
        _distribute_best_effort(db, conversation_id, log)

    return WebhookResponse(
        success=True,
        message=MSG_PROCESSED,
        conversaId=conversation_id,
        mensagemId=message_id,
        chatbot=describe_outcome(chatbot_result),
    )


@router.post("/whatsapp-webhook", response_model=WebhookResponse, response_model_exclude_none=True)
async def whatsapp_webhook(request: Request, db: Session = Depends(get_db)):
    """Receive one Evolution API event."""
    event = await _parse_event(request)
    if event is None:
        return WebhookResponse(success=True, message=MSG_IGNORED)

    log = get_request_logger("webhook", instance=event.instance, event=event.event)

    if event.event in (CONNECTION_UPDATE, QRCODE_UPDATED):
        return _handle_connection_event(db, event, log)

    if not event.is_customer_message():
        log.debug("Event ignored")
        return WebhookResponse(success=True, message=MSG_IGNORED)

    try:
        data = MessageData.model_validate(event.data)
    except ValidationError as exc:
        log.warning("Malformed messages.upsert data", context={"errors": exc.error_count()})
        return WebhookResponse(success=True, message=MSG_IGNORED)

    return _handle_customer_message(db, event, data, log)
