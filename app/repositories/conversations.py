from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update

from app.models.conversation import Conversation
from app.models.enums import ConversationStatus
from app.repositories.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    model_class = Conversation

    def get_for_contact(self, workspace_id: uuid.UUID, contact_id: uuid.UUID) -> Conversation | None:
        return self.db.scalars(
            select(Conversation).where(
                Conversation.workspace_id == workspace_id,
                Conversation.contact_id == contact_id,
            )
        ).first()

    def add(self, conversation: Conversation) -> Conversation | None:
        return self._insert_or_none(conversation)

    def record_inbound(self, conversation_id: uuid.UUID, preview: str, at: datetime) -> None:
        self._update(
            conversation_id,
            status=ConversationStatus.open,
            last_message=preview,
            last_message_at=at,
            unread_count=Conversation.unread_count + 1,
            updated_at=at,
        )

    def record_outbound(self, conversation_id: uuid.UUID, preview: str, at: datetime) -> None:
        self._update(
            conversation_id,
            status=ConversationStatus.open,
            last_message=preview,
            last_message_at=at,
            updated_at=at,
        )

    def claim_first_inbound(self, conversation_id: uuid.UUID, at: datetime) -> bool:
        # rowcount decides the claim, so no RETURNING-based session sync here.
        result = self.db.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id, Conversation.first_inbound_at.is_(None))
            .values(first_inbound_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_status(self, conversation_id: uuid.UUID, status: ConversationStatus) -> None:
        self._update(conversation_id, status=status)

    def assign(self, conversation_id: uuid.UUID, agent_id: str | None) -> None:
        self._update(conversation_id, assigned_to=agent_id)

    def reset_unread(self, conversation_id: uuid.UUID) -> None:
        self._update(conversation_id, unread_count=0)

    def _update(self, conversation_id: uuid.UUID, **values) -> None:
        # Single UPDATE statement; counters are computed in SQL, never read-modify-write.
        self.db.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
