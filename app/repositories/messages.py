from __future__ import annotations

import uuid

from sqlalchemy import select, update

from app.models.conversation import Message
from app.models.enums import MessageDirection, MessageStatus
from app.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    model_class = Message

    def find_by_external_id(
        self,
        workspace_id: uuid.UUID,
        external_id: str,
        direction: MessageDirection,
    ) -> Message | None:
        return self.db.scalars(
            select(Message)
            .where(
                Message.workspace_id == workspace_id,
                Message.external_id == external_id,
                Message.direction == direction,
            )
            .order_by(Message.created_at.asc())
        ).first()

    def add(self, message: Message) -> Message | None:
        return self._insert_or_none(message)

    def update_status(self, message_id: uuid.UUID, status: MessageStatus) -> None:
        self.db.execute(
            update(Message)
            .where(Message.id == message_id)
            .values(status=status)
            .execution_options(synchronize_session="fetch")
        )

    def recent(self, conversation_id: uuid.UUID, limit: int) -> list[Message]:
        newest_first = self.db.scalars(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
        ).all()
        return list(reversed(newest_first))
