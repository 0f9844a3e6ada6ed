"""Dependency injection container.

Builds the ingestion pipeline and its collaborators for a database
session. Tests and alternative deployments swap pieces out through the
provider override API:

    with container.dead_letter_writer.override(providers.Object(fake_writer)):
        pipeline = container.ingestion_pipeline(db=session)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from dependency_injector import containers, providers  # type: ignore[import-not-found]

from app.config import settings

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _repositories_factory(db: "Session"):
    from app.repositories import build_repositories

    return build_repositories(db)


def _pipeline_factory(db: "Session", http_client, dead_letter_writer, default_workspace_id):
    from app.services.inbox.pipeline import WebhookIngestionPipeline

    return WebhookIngestionPipeline(
        _repositories_factory(db),
        default_workspace_id=default_workspace_id,
        http_client=http_client,
        dead_letter_writer=dead_letter_writer,
    )


def _get_dead_letter_writer():
    from app.services.webhook_dead_letter import write_dead_letter

    return write_dead_letter


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Shared client for automation webhook actions; per-call timeout still applies.
    http_client = providers.Singleton(httpx.Client, timeout=settings.automation_webhook_timeout_seconds)

    dead_letter_writer = providers.Callable(_get_dead_letter_writer)

    repositories = providers.Factory(_repositories_factory)

    ingestion_pipeline = providers.Factory(
        _pipeline_factory,
        http_client=http_client,
        dead_letter_writer=dead_letter_writer,
        default_workspace_id=settings.default_workspace_id,
    )


container = Container()
