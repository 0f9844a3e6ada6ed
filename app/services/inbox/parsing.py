"""Normalization of WhatsApp Cloud API webhook payloads.

A payload nests ``entry[].changes[].value``; each value carries either
``messages`` (new inbound messages, with ``contacts`` and ``metadata``
alongside) or ``statuses`` (delivery receipts for outbound messages).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from app.models.enums import MessageStatus, MessageType
from app.schemas.inbox import InboundMessage, StatusUpdate
from app.services.inbox.errors import InboxValidationError

_MEDIA_TYPES = {"image", "audio", "video", "document", "sticker"}


@dataclass(frozen=True)
class ChangeValue:
    phone_number_id: str | None
    display_phone: str | None
    contact_names: dict[str, str] = field(default_factory=dict)
    messages: list[dict] = field(default_factory=list)
    statuses: list[dict] = field(default_factory=list)


def iter_change_values(payload: dict) -> Iterator[ChangeValue]:
    """Yield each change value; malformed fragments are skipped, never raised."""
    for entry in _dicts(payload.get("entry")):
        for change in _dicts(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            metadata = _dict(value.get("metadata"))
            yield ChangeValue(
                phone_number_id=_str_or_none(metadata.get("phone_number_id")),
                display_phone=_str_or_none(metadata.get("display_phone_number")),
                contact_names=_contact_names(_dicts(value.get("contacts"))),
                messages=_dicts(value.get("messages")),
                statuses=_dicts(value.get("statuses")),
            )


def parse_inbound_message(raw: dict, change: ChangeValue) -> InboundMessage:
    sender = _str_or_none(raw.get("from"))
    if sender is None:
        raise InboxValidationError("missing_sender", f"Message {raw.get('id')} has no sender")
    raw_type = raw.get("type") or "text"
    return InboundMessage(
        external_id=_str_or_none(raw.get("id")),
        from_phone=sender,
        contact_name=change.contact_names.get(sender) or change.contact_names.get(""),
        type=_message_type(raw_type),
        body=extract_body(raw),
        received_at=_parse_timestamp(raw.get("timestamp")),
        phone_number_id=change.phone_number_id,
        display_phone=change.display_phone,
    )


def parse_status_update(raw: dict, change: ChangeValue) -> StatusUpdate | None:
    """Returns None for statuses this service does not track."""
    status_value = raw.get("status")
    try:
        status = MessageStatus(status_value)
    except ValueError:
        return None
    external_id = _str_or_none(raw.get("id"))
    if not external_id:
        return None
    return StatusUpdate(
        external_id=external_id,
        status=status,
        phone_number_id=change.phone_number_id,
        display_phone=change.display_phone,
    )


def extract_body(raw: dict) -> str:
    msg_type = raw.get("type")
    if msg_type == "text":
        return (raw.get("text") or {}).get("body") or ""
    if msg_type == "button":
        return (raw.get("button") or {}).get("text") or ""
    if msg_type == "interactive":
        interactive = raw.get("interactive") or {}
        reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
        return reply.get("title") or ""
    if msg_type in _MEDIA_TYPES:
        return (raw.get(msg_type) or {}).get("caption") or ""
    return ""


def _message_type(raw_type: str) -> MessageType:
    if raw_type in _MEDIA_TYPES:
        return MessageType.media
    try:
        return MessageType(raw_type)
    except ValueError:
        return MessageType.other


def _contact_names(contacts: list[dict]) -> dict[str, str]:
    names: dict[str, str] = {}
    for contact in contacts:
        name = _dict(contact.get("profile")).get("name")
        if name:
            # Contacts without wa_id are keyed by "" and match any sender.
            names[_str_or_none(contact.get("wa_id")) or ""] = name
    return names


def _parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _str_or_none(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _dicts(value) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]
