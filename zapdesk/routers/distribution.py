from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import ClientDisconnect

from zapdesk.database import get_db
from zapdesk.logging_config import get_logger
from zapdesk.schemas.distribution import DistributionRequest, DistributionResponse
from zapdesk.schemas.evolution import ErrorResponse
from zapdesk.services.alert_service import alert_distribution_failed
from zapdesk.services.conversation_service import ConversationNotFoundError
from zapdesk.services.distribution_service import distribute_conversation
from zapdesk.services.state_machine import InvalidTransitionError

logger = get_logger("distribution")

router = APIRouter()

MSG_MISSING_ID = "conversa_id é obrigatório"
MSG_NOT_FOUND = "Conversa não encontrada"
MSG_CLOSED = "Conversa finalizada não pode ser distribuída"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def _read_conversa_id(request: Request) -> Optional[str]:
    """conversa_id from the body; anything unreadable counts as missing."""
    try:
        payload = await request.json()
    except (ClientDisconnect, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    return DistributionRequest.model_validate(payload).conversa_id


@router.post(
    "/auto-distribuir-conversas",
    response_model=DistributionResponse,
    response_model_exclude_none=True,
)
async def auto_distribute(request: Request, db: Session = Depends(get_db)):
    """Keep, assign or queue one conversation."""
    conversa_id = await _read_conversa_id(request)
    if not conversa_id:
        return _error(status.HTTP_400_BAD_REQUEST, MSG_MISSING_ID)

    try:
        conversation_id = UUID(conversa_id)
    except ValueError:
        return _error(status.HTTP_404_NOT_FOUND, MSG_NOT_FOUND)

    try:
        result = distribute_conversation(db, conversation_id)
        db.commit()
    except ConversationNotFoundError as e:
        db.rollback()
        return _error(status.HTTP_404_NOT_FOUND, e.message)
    except InvalidTransitionError as e:
        db.rollback()
        logger.info(f"Distribution refused for {conversation_id}: {e}")
        return _error(status.HTTP_400_BAD_REQUEST, MSG_CLOSED)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Distribution failed for {conversation_id}: {e}")
        alert_distribution_failed(conversation_id, str(e))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    return DistributionResponse(
        success=True,
        action=result.action.value,
        agente=result.agent_name,
        agente_id=result.agent_id,
        message=result.message,
    )
