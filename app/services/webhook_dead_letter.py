"""Persistence of inbound webhook messages that could not be processed."""

import logging
import traceback

from app.db import SessionLocal
from app.models.webhook_dead_letter import WebhookDeadLetter

logger = logging.getLogger(__name__)


def write_dead_letter(
    channel: str,
    raw_payload: dict | str | bytes,
    error: str | Exception,
    trace_id: str | None = None,
    message_id: str | None = None,
) -> None:
    """Store a failed inbound payload for later inspection.

    Opens its own session so it works even when the caller's session is
    mid-rollback. Failures to write are logged, never raised.
    """
    if isinstance(error, Exception):
        error_str = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    else:
        error_str = str(error)

    if isinstance(raw_payload, bytes):
        raw_payload = raw_payload.decode("utf-8", errors="replace")
    if isinstance(raw_payload, str):
        raw_payload = {"raw_text": raw_payload[:8000]}

    session = SessionLocal()
    try:
        session.add(
            WebhookDeadLetter(
                channel=channel,
                trace_id=trace_id,
                message_id=message_id,
                raw_payload=raw_payload,
                error=error_str[:4000] if error_str else None,
            )
        )
        session.commit()
        logger.info(
            "webhook_dead_letter_written channel=%s trace_id=%s message_id=%s",
            channel,
            trace_id,
            message_id,
        )
    except Exception:
        session.rollback()
        logger.exception("webhook_dead_letter_write_failed channel=%s trace_id=%s", channel, trace_id)
    finally:
        session.close()
