"""Resolution of the receiving workspace and the sending contact."""

from __future__ import annotations

import uuid

from app.models.contact import Contact
from app.models.enums import ContactSource
from app.repositories.interfaces import ContactRepository, WorkspaceRepository
from app.services.common import coerce_uuid, normalize_phone, now
from app.services.inbox.context import get_inbox_logger
from app.services.inbox.errors import WorkspaceResolutionError

logger = get_inbox_logger(__name__)


class IdentityResolver:
    def __init__(
        self,
        workspaces: WorkspaceRepository,
        contacts: ContactRepository,
        default_workspace_id: uuid.UUID | str | None = None,
    ):
        self.workspaces = workspaces
        self.contacts = contacts
        self.default_workspace_id = coerce_uuid(default_workspace_id) if default_workspace_id else None

    def resolve_workspace(self, phone_number_id: str | None, display_phone: str | None) -> uuid.UUID:
        """Pick the workspace owning the number a message arrived on.

        A connected channel matching the provider's phone number id wins,
        then one matching the digits of the displayed number. Without a
        match the configured default workspace is used; with no default the
        message cannot be attributed and WorkspaceResolutionError is raised.
        """
        if phone_number_id:
            connection = self.workspaces.find_connection_by_phone_number_id(phone_number_id)
            if connection:
                return connection.workspace_id

        normalized = normalize_phone(display_phone)
        if normalized:
            connection = self.workspaces.find_connection_by_phone(normalized)
            if connection:
                return connection.workspace_id

        if self.default_workspace_id is not None:
            if self.workspaces.get(self.default_workspace_id) is None:
                raise WorkspaceResolutionError(
                    "default_workspace_missing",
                    f"Configured default workspace {self.default_workspace_id} does not exist",
                )
            logger.warning(
                "workspace_fallback_default phone_number_id=%s display_phone=%s workspace_id=%s",
                phone_number_id,
                display_phone,
                self.default_workspace_id,
            )
            return self.default_workspace_id

        raise WorkspaceResolutionError(
            "workspace_unresolved",
            f"No channel connection for phone_number_id={phone_number_id} display_phone={display_phone}",
        )

    def resolve_contact(
        self,
        workspace_id: uuid.UUID,
        phone: str,
        display_name: str | None = None,
    ) -> tuple[Contact, bool]:
        """Return the contact for (workspace, phone), creating it if absent.

        The boolean is True when this call created the contact. Existing
        contacts get their last-seen timestamp refreshed.
        """
        seen_at = now()
        contact = self.contacts.get_by_phone(workspace_id, phone)
        if contact is not None:
            self.contacts.touch(contact.id, seen_at, name=display_name)
            return contact, False

        created = self.contacts.add(
            Contact(
                id=uuid.uuid4(),
                workspace_id=workspace_id,
                phone=phone,
                name=display_name or phone,
                source=ContactSource.inbound_channel,
                last_seen_at=seen_at,
            )
        )
        if created is not None:
            logger.info("contact_created workspace_id=%s contact_id=%s", workspace_id, created.id)
            return created, True

        # Lost a concurrent insert for the same phone.
        contact = self.contacts.get_by_phone(workspace_id, phone)
        if contact is None:
            raise RuntimeError(f"contact for {phone} vanished after unique conflict")
        self.contacts.touch(contact.id, seen_at, name=display_name)
        return contact, False
