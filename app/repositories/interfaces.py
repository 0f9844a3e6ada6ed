"""Storage contracts consumed by the ingestion pipeline and automations.

The SQLAlchemy implementations live next to this module; tests substitute
in-memory fakes that honour the same contracts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from app.models.automation_rule import AutomationRule, AutomationRuleLog
from app.models.contact import Contact
from app.models.conversation import Conversation, Message
from app.models.enums import ConversationStatus, MessageDirection, MessageStatus
from app.models.workspace import ChannelConnection, Workspace


class UnitOfWork(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class WorkspaceRepository(Protocol):
    def get(self, workspace_id: uuid.UUID) -> Workspace | None: ...

    def find_connection_by_phone_number_id(self, phone_number_id: str) -> ChannelConnection | None: ...

    def find_connection_by_phone(self, normalized_phone: str) -> ChannelConnection | None: ...


class ContactRepository(Protocol):
    def get(self, contact_id: uuid.UUID) -> Contact | None: ...

    def get_by_phone(self, workspace_id: uuid.UUID, phone: str) -> Contact | None: ...

    def add(self, contact: Contact) -> Contact | None:
        """Insert; returns None when (workspace, phone) already exists."""
        ...

    def touch(self, contact_id: uuid.UUID, seen_at: datetime, name: str | None = None) -> None: ...

    def add_tag(self, contact_id: uuid.UUID, tag: str) -> bool:
        """Returns False when the tag was already present."""
        ...


class ConversationRepository(Protocol):
    def get(self, conversation_id: uuid.UUID) -> Conversation | None: ...

    def get_for_contact(self, workspace_id: uuid.UUID, contact_id: uuid.UUID) -> Conversation | None: ...

    def add(self, conversation: Conversation) -> Conversation | None:
        """Insert; returns None when (workspace, contact) already has one."""
        ...

    def record_inbound(self, conversation_id: uuid.UUID, preview: str, at: datetime) -> None:
        """Atomically reopen, set the preview and increment unread by one."""
        ...

    def record_outbound(self, conversation_id: uuid.UUID, preview: str, at: datetime) -> None: ...

    def claim_first_inbound(self, conversation_id: uuid.UUID, at: datetime) -> bool:
        """True only for the call that stamps the first inbound message."""
        ...

    def set_status(self, conversation_id: uuid.UUID, status: ConversationStatus) -> None: ...

    def assign(self, conversation_id: uuid.UUID, agent_id: str | None) -> None: ...

    def reset_unread(self, conversation_id: uuid.UUID) -> None: ...


class MessageRepository(Protocol):
    def find_by_external_id(
        self,
        workspace_id: uuid.UUID,
        external_id: str,
        direction: MessageDirection,
    ) -> Message | None: ...

    def add(self, message: Message) -> Message | None:
        """Insert; returns None when the inbound external id is taken."""
        ...

    def update_status(self, message_id: uuid.UUID, status: MessageStatus) -> None: ...

    def recent(self, conversation_id: uuid.UUID, limit: int) -> list[Message]: ...


class AutomationRuleRepository(Protocol):
    def list_active(self, workspace_id: uuid.UUID) -> list[AutomationRule]:
        """Active rules in storage order."""
        ...

    def increment_executions(self, rule_id: uuid.UUID, at: datetime) -> None: ...

    def add_log(self, log: AutomationRuleLog) -> None: ...


@dataclass
class Repositories:
    workspaces: WorkspaceRepository
    contacts: ContactRepository
    conversations: ConversationRepository
    messages: MessageRepository
    rules: AutomationRuleRepository
    uow: UnitOfWork
