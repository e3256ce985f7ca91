import re
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from zapdesk.logging_config import get_logger
from zapdesk.models import Company, Contact, WhatsAppInstance

logger = get_logger("contact_service")

DEFAULT_CONTACT_NAME = "Cliente"

_NON_DIGITS = re.compile(r"\D")


class TenantNotFoundError(Exception):
    def __init__(self, message: str = "Nenhuma empresa ativa encontrada"):
        self.message = message
        super().__init__(message)


def normalize_phone(remote_jid: Optional[str]) -> str:
    """5511999999999@s.whatsapp.net -> 5511999999999. Idempotent."""
    return _NON_DIGITS.sub("", remote_jid or "")


def resolve_company_id(db: Session, instance_name: Optional[str]) -> UUID:
    """Tenant that owns the gateway instance, else the default (first active) company."""
    if instance_name:
        instance = db.query(WhatsAppInstance).filter(WhatsAppInstance.instance_name == instance_name).first()
        if instance and instance.empresa_id:
            return instance.empresa_id
        logger.info(f"Instance '{instance_name}' not registered, using default company")

    company = (
        db.query(Company)
        .filter(Company.ativo.is_(True))
        .order_by(Company.created_at.asc())
        .first()
    )
    if not company:
        raise TenantNotFoundError()
    return company.id


def get_or_create_contact(db: Session, empresa_id: UUID, telefone: str, nome: Optional[str] = None) -> Contact:
    """Find contact by phone within the company or create a new one."""
    contact = (
        db.query(Contact)
        .filter(Contact.empresa_id == empresa_id, Contact.telefone == telefone)
        .first()
    )

    if not contact:
        now = datetime.now(timezone.utc)
        contact = Contact(
            empresa_id=empresa_id,
            telefone=telefone,
            nome=nome or DEFAULT_CONTACT_NAME,
            created_at=now,
            updated_at=now,
        )
        db.add(contact)
        db.flush()
        logger.info(f"Created contact {contact.id} for {telefone}")

    return contact
