from sqlalchemy import Boolean, Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class Company(Base):
    __tablename__ = "empresas"

    id = Column(UUID(as_uuid=True), primary_key=True)
    nome = Column(Text, nullable=False)
    ativo = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    contacts = relationship("Contact", back_populates="company")
    instances = relationship("WhatsAppInstance", back_populates="company")
