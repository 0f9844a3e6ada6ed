from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.config import settings
from app.db import init_db
from app.logging import configure_logging
from app.web.public.webhooks import router as webhooks_router

configure_logging()

app = FastAPI(title="WhatsApp Inbox")
app.include_router(webhooks_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def _create_schema():
    if settings.auto_create_schema:
        init_db()
