from zapdesk.services.contact_service import (
    TenantNotFoundError,
    get_or_create_contact,
    normalize_phone,
    resolve_company_id,
)
from zapdesk.services.conversation_service import (
    ConversationNotFoundError,
    get_conversation,
    get_or_create_conversation,
    touch_conversation,
)
from zapdesk.services.distribution_service import (
    DistributionAction,
    DistributionResult,
    distribute_conversation,
)
from zapdesk.services.message_service import (
    find_message_by_gateway_id,
    save_customer_message,
)
from zapdesk.services.state_machine import (
    ConversationStatus,
    InvalidTransitionError,
    can_transition,
    transition,
)
