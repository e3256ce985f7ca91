from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class FlowEngineRequest(BaseModel):
    conversaId: UUID
    iniciarFluxo: Optional[bool] = None
    mensagemCliente: Optional[str] = None
    source: str = "evolution_webhook"


class N8nEvent(BaseModel):
    event_type: str
    timestamp: str
    empresa_id: UUID
    payload: dict[str, Any]
    source: str = "zapdesk"
