import uuid

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class Conversation(Base):
    __tablename__ = "conversas"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    contato_id = Column(UUID(as_uuid=True), ForeignKey("contatos.id"))
    empresa_id = Column(UUID(as_uuid=True), ForeignKey("empresas.id"))
    agente_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id"))
    status = Column(Text)  # ativo, em-atendimento, pendente, finalizado
    canal = Column(Text)  # whatsapp
    prioridade = Column(Text)  # baixa, normal, alta, urgente
    setor = Column(Text)
    resumo_atendimento = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))
    finished_at = Column(TIMESTAMP(timezone=True))

    contact = relationship("Contact", back_populates="conversations")
    agent = relationship("AgentProfile", back_populates="conversations")
    messages = relationship("Message", back_populates="conversation")
    chatbot_session = relationship("ChatbotSession", back_populates="conversation", uselist=False)
