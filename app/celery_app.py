from celery import Celery
from celery.signals import setup_logging

from app.config import settings
from app.logging import configure_logging

celery_app = Celery(
    "wa_inbox",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.webhooks"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)


@setup_logging.connect
def _configure_worker_logging(**_kwargs):
    configure_logging()
