from zapdesk.schemas.chatbot import FlowEngineRequest, N8nEvent
from zapdesk.schemas.distribution import DistributionRequest, DistributionResponse
from zapdesk.schemas.evolution import EvolutionEvent, MessageData, WebhookResponse

__all__ = [
    "EvolutionEvent",
    "MessageData",
    "WebhookResponse",
    "DistributionRequest",
    "DistributionResponse",
    "FlowEngineRequest",
    "N8nEvent",
]
