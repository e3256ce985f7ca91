"""Forward helpdesk events to the company's n8n webhook."""

import time
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from zapdesk.config import settings
from zapdesk.logging_config import get_logger
from zapdesk.models import N8nConfiguration, N8nExecutionLog
from zapdesk.schemas.chatbot import N8nEvent
from zapdesk.services.result import Result

logger = get_logger("n8n_service")

CONFIG_ACTIVE = "active"
EVENT_MESSAGE_RECEIVED = "message.received"


def get_active_configuration(db: Session, empresa_id: UUID) -> Optional[N8nConfiguration]:
    return (
        db.query(N8nConfiguration)
        .filter(N8nConfiguration.empresa_id == empresa_id, N8nConfiguration.status == CONFIG_ACTIVE)
        .first()
    )


def build_message_received_payload(
    conversa_id: UUID,
    mensagem_id: UUID,
    telefone: str,
    nome: Optional[str],
    conteudo: str,
    instance_name: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "instance_name": instance_name,
        "conversa_id": str(conversa_id),
        "message": {
            "id": str(mensagem_id),
            "from": telefone,
            "content": conteudo,
            "type": "text",
        },
        "contact": {"phone": telefone, "name": nome or ""},
    }


def _post_event(config: N8nConfiguration, event: N8nEvent) -> Optional[str]:
    """Returns an error message, or None on 2xx."""
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    try:
        with httpx.Client(timeout=settings.http_timeout_seconds) as client:
            response = client.post(config.webhook_url, json=event.model_dump(mode="json"), headers=headers)
    except httpx.HTTPError as e:
        return str(e)
    if not response.is_success:
        return f"HTTP {response.status_code}: {response.reason_phrase}"
    return None


def record_execution(
    db: Session,
    config: N8nConfiguration,
    event: N8nEvent,
    error_message: Optional[str],
    duration_ms: int,
) -> None:
    """Execution log row plus running totals on the configuration."""
    success = error_message is None
    db.add(
        N8nExecutionLog(
            config_id=config.id,
            status="success" if success else "error",
            event_type=event.event_type,
            input_data=event.model_dump(mode="json"),
            error_message=error_message,
            duration_ms=duration_ms,
        )
    )

    total = config.total_executions or 0
    rate = float(config.success_rate or 0)
    config.success_rate = (rate * total + (100 if success else 0)) / (total + 1)
    config.total_executions = total + 1
    config.last_ping = datetime.now(timezone.utc)
    db.flush()


def forward_event(db: Session, empresa_id: UUID, event_type: str, payload: dict[str, Any]) -> Result[int]:
    """Send one event to n8n. Returns the call duration in ms. Caller commits."""
    if not settings.n8n_forwarding_enabled:
        return Result.skip("n8n_disabled")

    config = get_active_configuration(db, empresa_id)
    if not config:
        return Result.skip("n8n_not_configured")

    event = N8nEvent(
        event_type=event_type,
        timestamp=datetime.now(timezone.utc).isoformat(),
        empresa_id=empresa_id,
        payload=payload,
    )

    started = time.monotonic()
    error_message = _post_event(config, event)
    duration_ms = int((time.monotonic() - started) * 1000)

    record_execution(db, config, event, error_message, duration_ms)

    if error_message:
        logger.warning(
            f"n8n forwarding failed: {error_message}",
            extra={"context": {"empresa_id": str(empresa_id), "event_type": event_type}},
        )
        return Result.failure(error_message, "n8n_error")

    logger.info(f"Forwarded {event_type} to n8n in {duration_ms}ms")
    return Result.success(duration_ms)
