"""Base class for SQLAlchemy repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from sqlalchemy.exc import IntegrityError

from app.services.common import coerce_uuid

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Session-bound repository for one model.

    Subclasses set `model_class`. Repositories flush but never commit;
    transaction boundaries belong to the caller.
    """

    model_class: type[T]

    def __init__(self, db: Session):
        self.db = db

    def get(self, id: UUID | str) -> T | None:
        return self.db.get(self.model_class, coerce_uuid(id))

    def _insert_or_none(self, obj: T) -> T | None:
        """Insert inside a savepoint; a unique-constraint conflict yields None."""
        try:
            with self.db.begin_nested():
                self.db.add(obj)
        except IntegrityError:
            return None
        return obj
