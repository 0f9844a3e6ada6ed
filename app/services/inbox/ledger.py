"""Append-only message ledger with provider-id correlation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from app.models.conversation import Message
from app.models.enums import MessageDirection, MessageStatus
from app.repositories.interfaces import MessageRepository
from app.services.inbox.context import get_inbox_logger

logger = get_inbox_logger(__name__)

_STATUS_RANK = {
    MessageStatus.sent: 0,
    MessageStatus.delivered: 1,
    MessageStatus.read: 2,
}


@dataclass(frozen=True)
class AppendResult:
    message: Message | None
    duplicate: bool = False


class MessageLedger:
    def __init__(self, messages: MessageRepository):
        self.messages = messages

    def append(self, message: Message) -> AppendResult:
        """Insert ``message`` unless its inbound external id is already stored.

        The existence check covers retries; the partial unique index covers
        two deliveries racing past the check.
        """
        is_keyed = message.external_id and message.direction == MessageDirection.inbound
        if is_keyed:
            existing = self.messages.find_by_external_id(
                message.workspace_id, message.external_id, MessageDirection.inbound
            )
            if existing is not None:
                logger.info(
                    "message_duplicate workspace_id=%s external_id=%s",
                    message.workspace_id,
                    message.external_id,
                )
                return AppendResult(message=existing, duplicate=True)

        stored = self.messages.add(message)
        if stored is None:
            existing = None
            if is_keyed:
                existing = self.messages.find_by_external_id(
                    message.workspace_id, message.external_id, MessageDirection.inbound
                )
            logger.info(
                "message_duplicate_race workspace_id=%s external_id=%s",
                message.workspace_id,
                message.external_id,
            )
            return AppendResult(message=existing, duplicate=True)
        return AppendResult(message=stored)

    def mark_status(self, workspace_id: uuid.UUID, external_id: str, status: MessageStatus) -> Message | None:
        """Apply a delivery status to the outbound message with ``external_id``.

        Unknown ids are ignored. Statuses only move forward
        (sent -> delivered -> read) so reordered callbacks cannot regress
        a message; ``failed`` is terminal and cannot replace ``read``.
        """
        message = self.messages.find_by_external_id(workspace_id, external_id, MessageDirection.outbound)
        if message is None:
            logger.debug("status_unknown_message workspace_id=%s external_id=%s", workspace_id, external_id)
            return None
        if not _should_apply(message.status, status):
            return message
        self.messages.update_status(message.id, status)
        return message

    def recent(self, conversation_id: uuid.UUID, limit: int = 50) -> list[Message]:
        return self.messages.recent(conversation_id, limit)


def _should_apply(current: MessageStatus | None, new: MessageStatus) -> bool:
    if current is None:
        return True
    if current == new or current in (MessageStatus.read, MessageStatus.failed):
        return False
    if new == MessageStatus.failed:
        return True
    return _STATUS_RANK[new] > _STATUS_RANK[current]
