from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from zapdesk.logging_config import get_logger
from zapdesk.models import WhatsAppInstance
from zapdesk.schemas.evolution import CONNECTION_UPDATE, QRCODE_UPDATED

logger = get_logger("instance_service")

QR_DATA_URI_PREFIX = "data:image/"

_OPEN_STATES = {"open", "CONNECTED"}
_CLOSED_STATES = {"close", "DISCONNECTED"}
_CONNECTING_STATES = {"connecting", "CONNECTING"}


def _qr_code_from(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        qrcode = data.get("qrcode")
        if isinstance(qrcode, dict):
            return qrcode.get("base64") or qrcode.get("code")
        return qrcode or data.get("base64")
    return None


def _owner_number(instance_data: dict) -> Optional[str]:
    jid = instance_data.get("wuid") or instance_data.get("ownerJid")
    if not jid:
        return None
    return jid.split("@")[0]


def build_connection_update(event: str, data: Any, now: Optional[datetime] = None) -> dict:
    """Column changes for a qrcode.updated / connection.update event."""
    now = now or datetime.now(timezone.utc)
    changes: dict = {}

    if event == QRCODE_UPDATED:
        qr = _qr_code_from(data)
        if qr:
            changes["qr_code"] = qr if qr.startswith(QR_DATA_URI_PREFIX) else f"data:image/png;base64,{qr}"
        changes["status"] = "connecting"
        changes["connection_state"] = "CONNECTING"
        return changes

    if event != CONNECTION_UPDATE:
        return changes

    data = data if isinstance(data, dict) else {}
    state = data.get("state") or data.get("connection") or "DISCONNECTED"
    changes["connection_state"] = state

    if state in _OPEN_STATES:
        changes["status"] = "open"
        changes["qr_code"] = None
        changes["last_connected_at"] = now
        instance_data = data.get("instance") if isinstance(data.get("instance"), dict) else data
        if instance_data.get("profilePictureUrl"):
            changes["profile_picture_url"] = instance_data["profilePictureUrl"]
        if instance_data.get("profileName"):
            changes["profile_name"] = instance_data["profileName"]
        number = _owner_number(instance_data)
        if number:
            changes["numero"] = number
    elif state in _CLOSED_STATES:
        changes["status"] = "close"
        changes["qr_code"] = None
    elif state in _CONNECTING_STATES:
        changes["status"] = "connecting"

    return changes


def apply_connection_event(db: Session, instance_name: Optional[str], event: str, data: Any) -> Optional[WhatsAppInstance]:
    """Update the instance row; unknown instances are ignored. Caller commits."""
    if not instance_name:
        return None

    instance = db.query(WhatsAppInstance).filter(WhatsAppInstance.instance_name == instance_name).first()
    if not instance:
        logger.warning(f"Connection event {event} for unknown instance '{instance_name}'")
        return None

    changes = build_connection_update(event, data)
    for column, value in changes.items():
        setattr(instance, column, value)
    instance.updated_at = datetime.now(timezone.utc)
    db.flush()

    logger.info(
        f"Instance {instance_name} updated from {event}",
        extra={"context": {"status": changes.get("status"), "connection_state": changes.get("connection_state")}},
    )
    return instance
