from zapdesk.models.agent_profile import AgentProfile
from zapdesk.models.chatbot_session import ChatbotSession
from zapdesk.models.company import Company
from zapdesk.models.contact import Contact
from zapdesk.models.conversation import Conversation
from zapdesk.models.message import Message
from zapdesk.models.n8n_configuration import N8nConfiguration, N8nExecutionLog
from zapdesk.models.whatsapp_instance import WhatsAppInstance

__all__ = [
    "Company",
    "Contact",
    "AgentProfile",
    "Conversation",
    "Message",
    "ChatbotSession",
    "WhatsAppInstance",
    "N8nConfiguration",
    "N8nExecutionLog",
]
