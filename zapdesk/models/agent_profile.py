from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class AgentProfile(Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True)
    empresa_id = Column(UUID(as_uuid=True), ForeignKey("empresas.id"))
    nome = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    cargo = Column(Text)  # agente, supervisor, admin, super_admin
    status = Column(Text)  # online, offline, ausente
    setor = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))  # bumped by presence heartbeats

    conversations = relationship("Conversation", back_populates="agent")
