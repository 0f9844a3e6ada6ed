"""Conversation thread tracking.

Each (workspace, contact) pair owns exactly one conversation. Mutations go
through single-statement updates in the repository so concurrent inbound
messages for the same thread cannot lose unread increments. Methods flush
only; the caller commits.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from app.config import settings
from app.models.conversation import Conversation
from app.models.enums import ConversationStatus
from app.repositories.interfaces import ConversationRepository
from app.services.common import now, truncate_preview
from app.services.inbox.context import get_inbox_logger

logger = get_inbox_logger(__name__)


class ConversationTracker:
    def __init__(self, conversations: ConversationRepository, preview_length: int | None = None):
        self.conversations = conversations
        self.preview_length = preview_length or settings.last_message_preview_length

    def get_or_create(self, workspace_id: uuid.UUID, contact_id: uuid.UUID) -> tuple[Conversation, bool]:
        conversation = self.conversations.get_for_contact(workspace_id, contact_id)
        if conversation is not None:
            return conversation, False

        created = self.conversations.add(
            Conversation(
                id=uuid.uuid4(),
                workspace_id=workspace_id,
                contact_id=contact_id,
                status=ConversationStatus.open,
                unread_count=0,
            )
        )
        if created is not None:
            logger.info(
                "conversation_created workspace_id=%s contact_id=%s conversation_id=%s",
                workspace_id,
                contact_id,
                created.id,
            )
            return created, True

        conversation = self.conversations.get_for_contact(workspace_id, contact_id)
        if conversation is None:
            raise RuntimeError(f"conversation for contact {contact_id} vanished after unique conflict")
        return conversation, False

    def find_for_contact(self, workspace_id: uuid.UUID, contact_id: uuid.UUID) -> Conversation | None:
        return self.conversations.get_for_contact(workspace_id, contact_id)

    def record_inbound(self, conversation_id: uuid.UUID, body: str | None, at: datetime | None = None) -> None:
        self.conversations.record_inbound(conversation_id, truncate_preview(body, self.preview_length), at or now())

    def claim_first_inbound(self, conversation_id: uuid.UUID, at: datetime | None = None) -> bool:
        return self.conversations.claim_first_inbound(conversation_id, at or now())

    def record_outbound(self, conversation_id: uuid.UUID, body: str | None, at: datetime | None = None) -> None:
        self.conversations.record_outbound(conversation_id, truncate_preview(body, self.preview_length), at or now())

    def close(self, conversation_id: uuid.UUID) -> None:
        self.conversations.set_status(conversation_id, ConversationStatus.closed)

    def open(self, conversation_id: uuid.UUID) -> None:
        self.conversations.set_status(conversation_id, ConversationStatus.open)

    def assign(self, conversation_id: uuid.UUID, agent_id: str | None) -> None:
        self.conversations.assign(conversation_id, agent_id)

    def mark_read(self, conversation_id: uuid.UUID) -> None:
        self.conversations.reset_unread(conversation_id)
