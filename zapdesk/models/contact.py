import uuid

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from zapdesk.database import Base


class Contact(Base):
    __tablename__ = "contatos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    empresa_id = Column(UUID(as_uuid=True), ForeignKey("empresas.id"))
    nome = Column(Text, nullable=False)
    telefone = Column(Text)  # digits only, e.g. 5511999999999
    email = Column(Text)
    status = Column(Text)
    tags = Column(ARRAY(Text))
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    company = relationship("Company", back_populates="contacts")
    conversations = relationship("Conversation", back_populates="contact")
