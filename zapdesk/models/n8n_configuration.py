import uuid

from sqlalchemy import Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from zapdesk.database import Base


class N8nConfiguration(Base):
    __tablename__ = "n8n_configurations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    empresa_id = Column(UUID(as_uuid=True), ForeignKey("empresas.id"), nullable=False)
    webhook_url = Column(Text, nullable=False)
    api_key = Column(Text)
    status = Column(Text, default="active")  # active, inactive
    total_executions = Column(Integer, default=0)
    success_rate = Column(Numeric(5, 2), default=100)
    last_ping = Column(TIMESTAMP(timezone=True))

    logs = relationship("N8nExecutionLog", back_populates="config")


class N8nExecutionLog(Base):
    __tablename__ = "n8n_execution_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    config_id = Column(UUID(as_uuid=True), ForeignKey("n8n_configurations.id"), nullable=False)
    status = Column(Text, nullable=False)  # success, error
    event_type = Column(Text)
    input_data = Column(JSONB, default={})
    error_message = Column(Text)
    duration_ms = Column(Integer)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    config = relationship("N8nConfiguration", back_populates="logs")
