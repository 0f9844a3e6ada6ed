import json
import time
import uuid

from fastapi import APIRouter, BackgroundTasks, Query, Request, Response, status
from starlette.requests import ClientDisconnect

from app.config import settings
from app.logging import get_logger
from app.services.inbox.errors import InboxAuthError, InboxError, InboxValidationError
from app.services.inbox.signature import SIGNATURE_HEADER, verify_webhook_signature
from app.tasks import webhooks as webhook_tasks

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["web-public-webhooks"])


@router.get("/whatsapp")
async def whatsapp_webhook_verify(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
):
    """Handle the WhatsApp webhook subscription challenge."""
    expected_token = settings.whatsapp_verify_token
    if not expected_token:
        logger.warning("whatsapp_webhook_verify_failed reason=no_verify_token_configured")
        return Response(status_code=403)
    if hub_mode == "subscribe" and hub_verify_token == expected_token:
        logger.info("whatsapp_webhook_verified")
        return Response(content=hub_challenge or "", media_type="text/plain")
    logger.warning(
        "whatsapp_webhook_verify_failed mode=%s token_match=%s",
        hub_mode,
        hub_verify_token == expected_token,
    )
    return Response(status_code=403)


@router.post("/whatsapp", status_code=status.HTTP_200_OK)
async def whatsapp_webhook(request: Request, background_tasks: BackgroundTasks):
    """Acknowledge a WhatsApp webhook delivery and hand it off for processing.

    Only an unreadable or non-JSON body is rejected; processing failures
    surface in logs and dead letters, never in the response.
    """
    trace_id = str(uuid.uuid4())
    start_time = time.monotonic()
    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("whatsapp_webhook_client_disconnect trace_id=%s", trace_id)
        # Body was not fully read; let the provider retry.
        return Response(status_code=500)

    try:
        payload = _read_payload(request, body, trace_id)
    except InboxError as exc:
        raise exc.to_http_exception() from exc

    _dispatch(payload, trace_id, background_tasks)
    logger.info(
        "webhook_received channel=whatsapp trace_id=%s latency_ms=%s",
        trace_id,
        int((time.monotonic() - start_time) * 1000),
    )
    return {"status": "success"}


def _dispatch(payload: dict, trace_id: str, background_tasks: BackgroundTasks) -> None:
    if settings.inbound_dispatch == "background":
        background_tasks.add_task(webhook_tasks.run_ingestion_safely, payload, trace_id=trace_id)
        return
    try:
        webhook_tasks.process_whatsapp_payload.delay(payload, trace_id=trace_id)
    except Exception:
        logger.exception("whatsapp_webhook_enqueue_failed trace_id=%s falling back to in-process", trace_id)
        background_tasks.add_task(webhook_tasks.run_ingestion_safely, payload, trace_id=trace_id)


def _read_payload(request: Request, body: bytes, trace_id: str) -> dict:
    app_secret = settings.whatsapp_app_secret
    if app_secret:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not verify_webhook_signature(body, signature, app_secret):
            logger.warning("whatsapp_webhook_signature_invalid trace_id=%s present=%s", trace_id, bool(signature))
            raise InboxAuthError("invalid_signature", "Invalid signature")

    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("whatsapp_webhook_invalid_json trace_id=%s", trace_id)
        raise InboxValidationError("invalid_json", "Invalid JSON payload") from exc
    if not isinstance(payload, dict):
        logger.warning("whatsapp_webhook_invalid_payload trace_id=%s type=%s", trace_id, type(payload).__name__)
        raise InboxValidationError("invalid_payload", "Payload must be an object")
    return payload
