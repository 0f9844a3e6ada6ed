"""Celery tasks for inbound WhatsApp webhook processing."""

import logging

from app.celery_app import celery_app
from app.container import container
from app.db import SessionLocal
from app.services.inbox.context import with_inbox_context
from app.services.inbox.pipeline import IngestionSummary
from app.services.webhook_dead_letter import write_dead_letter

logger = logging.getLogger(__name__)

INBOUND_MAX_RETRIES = 5
INBOUND_RETRY_BASE_DELAY = 60  # seconds


@with_inbox_context
def run_ingestion(payload: dict, trace_id: str | None = None) -> IngestionSummary:
    """Process one provider payload in a fresh session.

    Per-message failures are handled inside the pipeline; anything raised
    here is an infrastructure failure for the payload as a whole.
    """
    session = SessionLocal()
    try:
        pipeline = container.ingestion_pipeline(db=session)
        summary = pipeline.process_payload(payload, trace_id=trace_id)
        logger.info(
            "webhook_processed channel=whatsapp trace_id=%s processed=%s duplicates=%s failed=%s",
            trace_id,
            summary.processed,
            summary.duplicates,
            summary.failed,
        )
        return summary
    finally:
        session.close()


def run_ingestion_safely(payload: dict, trace_id: str | None = None) -> None:
    """In-process variant for FastAPI background tasks; never raises."""
    try:
        run_ingestion(payload, trace_id=trace_id)
    except Exception as exc:
        logger.exception("whatsapp_webhook_processing_failed trace_id=%s error=%s", trace_id, exc)
        write_dead_letter(channel="whatsapp", raw_payload=payload, error=exc, trace_id=trace_id)


@celery_app.task(
    name="app.tasks.webhooks.process_whatsapp_payload",
    bind=True,
    max_retries=INBOUND_MAX_RETRIES,
)
def process_whatsapp_payload(self, payload: dict, trace_id: str | None = None):
    try:
        summary = run_ingestion(payload, trace_id=trace_id)
    except Exception as exc:
        logger.exception(
            "whatsapp_webhook_processing_failed trace_id=%s attempt=%s/%s error=%s",
            trace_id,
            self.request.retries,
            INBOUND_MAX_RETRIES,
            exc,
        )
        if self.request.retries >= self.max_retries:
            logger.error("whatsapp_webhook_retries_exhausted trace_id=%s writing to dead letter", trace_id)
            write_dead_letter(channel="whatsapp", raw_payload=payload, error=exc, trace_id=trace_id)
            return None
        # Replays skip messages that were already stored.
        raise self.retry(exc=exc, countdown=INBOUND_RETRY_BASE_DELAY * (2**self.request.retries))
    return {
        "processed": summary.processed,
        "duplicates": summary.duplicates,
        "failed": summary.failed,
    }
