from app.models.automation_rule import (  # noqa: F401
    AutomationLogOutcome,
    AutomationRule,
    AutomationRuleLog,
    AutomationRuleStatus,
    AutomationTrigger,
)
from app.models.contact import Contact, ContactTag  # noqa: F401
from app.models.conversation import Conversation, Message  # noqa: F401
from app.models.enums import (  # noqa: F401
    ChannelConnectionStatus,
    ContactSource,
    ConversationStatus,
    MessageDirection,
    MessageStatus,
    MessageType,
    WorkspacePlan,
)
from app.models.webhook_dead_letter import WebhookDeadLetter  # noqa: F401
from app.models.workspace import ChannelConnection, Workspace  # noqa: F401
