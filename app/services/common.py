"""Small helpers shared across services."""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime

from fastapi import HTTPException

_NON_DIGITS = re.compile(r"\D+")


def coerce_uuid(value: uuid.UUID | str | None) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid id") from exc


def normalize_phone(value: str | None) -> str:
    """Digits-only form of a phone number, used for channel matching."""
    if not value:
        return ""
    return _NON_DIGITS.sub("", value)


def truncate_preview(body: str | None, length: int) -> str:
    return (body or "")[:length]


def now() -> datetime:
    return datetime.now(UTC)
