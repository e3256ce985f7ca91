import uuid

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class ChatbotSession(Base):
    __tablename__ = "chatbot_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversa_id = Column(UUID(as_uuid=True), ForeignKey("conversas.id"), nullable=False)
    flow_id = Column(UUID(as_uuid=True), nullable=False)
    current_node_id = Column(Text, nullable=False)
    status = Column(Text, default="ativo")  # ativo, finalizado, transferido
    session_data = Column(JSONB, default={})
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    conversation = relationship("Conversation", back_populates="chatbot_session")
