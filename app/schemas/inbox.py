from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import MessageStatus, MessageType


class InboundMessage(BaseModel):
    """One inbound message normalized out of a provider payload."""

    external_id: str | None = Field(default=None, max_length=200)
    from_phone: str = Field(min_length=1, max_length=40)
    contact_name: str | None = Field(default=None, max_length=200)
    type: MessageType = MessageType.text
    body: str = ""
    received_at: datetime | None = None
    phone_number_id: str | None = None
    display_phone: str | None = None


class StatusUpdate(BaseModel):
    external_id: str = Field(min_length=1, max_length=200)
    status: MessageStatus
    phone_number_id: str | None = None
    display_phone: str | None = None


class InboundEvent(BaseModel):
    """What automation rules are evaluated against."""

    model_config = ConfigDict(frozen=True)

    body: str = ""
    conversation_id: UUID
    is_first_message: bool = False

