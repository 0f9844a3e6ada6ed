import enum


class WorkspacePlan(enum.Enum):
    free = "free"
    starter = "starter"
    pro = "pro"
    enterprise = "enterprise"


class ChannelConnectionStatus(enum.Enum):
    connected = "connected"
    disconnected = "disconnected"


class ContactSource(enum.Enum):
    inbound_channel = "inbound-channel"
    manual = "manual"
    import_ = "import"


class ConversationStatus(enum.Enum):
    open = "open"
    closed = "closed"


class MessageDirection(enum.Enum):
    inbound = "inbound"
    outbound = "outbound"


class MessageType(enum.Enum):
    text = "text"
    template = "template"
    media = "media"
    button = "button"
    interactive = "interactive"
    other = "other"


class MessageStatus(enum.Enum):
    sent = "sent"
    delivered = "delivered"
    read = "read"
    failed = "failed"
