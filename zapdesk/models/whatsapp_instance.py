import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class WhatsAppInstance(Base):
    __tablename__ = "evolution_api_config"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    empresa_id = Column(UUID(as_uuid=True), ForeignKey("empresas.id"), nullable=False)
    instance_name = Column(Text, nullable=False)
    status = Column(Text)  # open, close, connecting, starting
    connection_state = Column(Text)
    qr_code = Column(Text)
    numero = Column(Text)
    profile_name = Column(Text)
    profile_picture_url = Column(Text)
    ativo = Column(Boolean, default=True)
    last_connected_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    company = relationship("Company", back_populates="instances")
