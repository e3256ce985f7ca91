from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class DistributionRequest(BaseModel):
    """`conversa_id` may arrive as any JSON scalar; it is compared as text."""

    model_config = ConfigDict(extra="ignore")

    conversa_id: Optional[str] = None
    nova_mensagem: Optional[Any] = None

    @field_validator("conversa_id", mode="before")
    @classmethod
    def coerce_conversa_id(cls, value: object) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        text = str(value).strip()
        return text or None


class DistributionResponse(BaseModel):
    success: bool = True
    action: Literal["mantido", "atribuido", "fila"]
    agente: Optional[str] = None
    agente_id: Optional[UUID] = None
    message: str
