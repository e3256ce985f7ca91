import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class Message(Base):
    __tablename__ = "mensagens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversa_id = Column(UUID(as_uuid=True), ForeignKey("conversas.id"))
    conteudo = Column(Text, nullable=False)
    remetente_tipo = Column(Text, nullable=False)  # cliente, agente, sistema
    remetente_id = Column(UUID(as_uuid=True))
    remetente_nome = Column(Text)
    tipo_mensagem = Column(Text, default="texto")
    lida = Column(Boolean, default=False)
    message_metadata = Column("metadata", JSONB, default={})
    created_at = Column(TIMESTAMP(timezone=True))

    conversation = relationship("Conversation", back_populates="messages")
