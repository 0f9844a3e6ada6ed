from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update

from app.models.contact import Contact, ContactTag
from app.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    model_class = Contact

    def get_by_phone(self, workspace_id: uuid.UUID, phone: str) -> Contact | None:
        return self.db.scalars(
            select(Contact).where(Contact.workspace_id == workspace_id, Contact.phone == phone)
        ).first()

    def add(self, contact: Contact) -> Contact | None:
        return self._insert_or_none(contact)

    def touch(self, contact_id: uuid.UUID, seen_at: datetime, name: str | None = None) -> None:
        self.db.execute(update(Contact).where(Contact.id == contact_id).values(last_seen_at=seen_at))
        if name:
            self.db.execute(
                update(Contact).where(Contact.id == contact_id, Contact.name.is_(None)).values(name=name)
            )

    def add_tag(self, contact_id: uuid.UUID, tag: str) -> bool:
        existing = self.db.scalars(
            select(ContactTag).where(ContactTag.contact_id == contact_id, ContactTag.tag == tag)
        ).first()
        if existing:
            return False
        inserted = self._insert_or_none(ContactTag(contact_id=contact_id, tag=tag))
        if inserted is not None:
            contact = self.db.get(Contact, contact_id)
            if contact is not None:
                self.db.expire(contact, ["tag_links"])
        return inserted is not None
