"""Webhook ingestion pipeline.

Drives every message of a provider payload through
identity -> conversation -> ledger -> automations. Each inbound message is
processed in isolation: a failure is logged, counted and dead-lettered
without touching its siblings. Steps are individually idempotent, so
redelivering a payload after a crash is always safe; nothing is rolled
back once committed.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from app.config import settings
from app.models.conversation import Message
from app.models.enums import MessageDirection
from app.repositories.interfaces import Repositories
from app.schemas.inbox import InboundEvent, InboundMessage, StatusUpdate
from app.services.automation_actions import AutomationExecutor, RuleExecution
from app.services.automation_engine import AutomationRuleEngine
from app.services.common import now
from app.services.inbox.context import get_inbox_logger, get_trace_id, trace_scope
from app.services.inbox.conversations import ConversationTracker
from app.services.inbox.errors import WorkspaceResolutionError
from app.services.inbox.identity import IdentityResolver
from app.services.inbox.ledger import MessageLedger
from app.services.inbox.observability import INBOUND_MESSAGES, MESSAGE_PROCESSING_TIME, STATUS_UPDATES
from app.services.inbox.parsing import (
    ChangeValue,
    iter_change_values,
    parse_inbound_message,
    parse_status_update,
)
from app.services.webhook_dead_letter import write_dead_letter

logger = get_inbox_logger(__name__)

CHANNEL = "whatsapp"

DeadLetterWriter = Callable[..., None]


@dataclass(frozen=True)
class InboundProcessResult:
    message_id: uuid.UUID
    conversation_id: uuid.UUID
    is_first_message: bool
    executions: list[RuleExecution] = field(default_factory=list)


@dataclass(frozen=True)
class InboundDuplicateResult:
    external_id: str | None
    message_id: uuid.UUID | None


@dataclass(frozen=True)
class InboundFailedResult:
    external_id: str | None
    error: str


@dataclass
class IngestionSummary:
    processed: int = 0
    duplicates: int = 0
    failed: int = 0
    statuses_applied: int = 0
    statuses_ignored: int = 0
    results: list = field(default_factory=list)


class WebhookIngestionPipeline:
    def __init__(
        self,
        repositories: Repositories,
        *,
        default_workspace_id: uuid.UUID | str | None = None,
        http_client: httpx.Client | None = None,
        dead_letter_writer: DeadLetterWriter = write_dead_letter,
    ):
        self.repositories = repositories
        self.uow = repositories.uow
        self.identity = IdentityResolver(
            repositories.workspaces,
            repositories.contacts,
            default_workspace_id=default_workspace_id,
        )
        self.tracker = ConversationTracker(repositories.conversations)
        self.ledger = MessageLedger(repositories.messages)
        self.engine = AutomationRuleEngine(repositories.rules)
        self.executor = AutomationExecutor(
            contacts=repositories.contacts,
            rules=repositories.rules,
            tracker=self.tracker,
            ledger=self.ledger,
            uow=self.uow,
            http_client=http_client,
            webhook_timeout=settings.automation_webhook_timeout_seconds,
        )
        self.dead_letter_writer = dead_letter_writer

    def process_payload(self, payload: dict, trace_id: str | None = None) -> IngestionSummary:
        with trace_scope(trace_id):
            return self._process_changes(payload)

    def _process_changes(self, payload: dict) -> IngestionSummary:
        summary = IngestionSummary()
        for change in iter_change_values(payload):
            for raw_status in change.statuses:
                self._handle_status(raw_status, change, summary)
            for raw_message in change.messages:
                result = self._handle_message(raw_message, change)
                summary.results.append(result)
                if isinstance(result, InboundProcessResult):
                    summary.processed += 1
                elif isinstance(result, InboundDuplicateResult):
                    summary.duplicates += 1
                else:
                    summary.failed += 1
        logger.info(
            "webhook_payload_processed processed=%d duplicates=%d failed=%d statuses_applied=%d",
            summary.processed,
            summary.duplicates,
            summary.failed,
            summary.statuses_applied,
        )
        return summary

    def _handle_message(self, raw: dict, change: ChangeValue):
        start = time.perf_counter()
        external_id = raw.get("id")
        try:
            message = parse_inbound_message(raw, change)
            result = self.process_message(message)
        except Exception as exc:
            self.uow.rollback()
            INBOUND_MESSAGES.labels(channel_type=CHANNEL, status="error").inc()
            logger.exception("inbound_message_failed external_id=%s error=%s", external_id, exc)
            self.dead_letter_writer(
                channel=CHANNEL,
                raw_payload=raw,
                error=exc,
                trace_id=get_trace_id() or None,
                message_id=str(external_id) if external_id else None,
            )
            return InboundFailedResult(external_id=external_id, error=str(exc))
        finally:
            MESSAGE_PROCESSING_TIME.labels(channel_type=CHANNEL, direction="inbound").observe(
                time.perf_counter() - start
            )
        status = "duplicate" if isinstance(result, InboundDuplicateResult) else "success"
        INBOUND_MESSAGES.labels(channel_type=CHANNEL, status=status).inc()
        return result

    def process_message(self, message: InboundMessage) -> InboundProcessResult | InboundDuplicateResult:
        workspace_id = self.identity.resolve_workspace(message.phone_number_id, message.display_phone)
        contact, _ = self.identity.resolve_contact(workspace_id, message.from_phone, message.contact_name)
        conversation, _ = self.tracker.get_or_create(workspace_id, contact.id)
        self.uow.commit()
        conversation_id = conversation.id
        contact_id = contact.id

        received_at = message.received_at or now()
        appended = self.ledger.append(
            Message(
                id=uuid.uuid4(),
                workspace_id=workspace_id,
                conversation_id=conversation_id,
                external_id=message.external_id,
                direction=MessageDirection.inbound,
                type=message.type,
                body=message.body,
                created_at=now(),
            )
        )
        if appended.duplicate:
            self.uow.commit()
            return InboundDuplicateResult(
                external_id=message.external_id,
                message_id=appended.message.id if appended.message is not None else None,
            )

        is_first_message = self.tracker.claim_first_inbound(conversation_id, received_at)
        self.tracker.record_inbound(conversation_id, message.body, received_at)
        self.uow.commit()
        message_id = appended.message.id
        logger.info(
            "inbound_message_stored workspace_id=%s conversation_id=%s message_id=%s first=%s",
            workspace_id,
            conversation_id,
            message_id,
            is_first_message,
        )

        event = InboundEvent(
            body=message.body,
            conversation_id=conversation_id,
            is_first_message=is_first_message,
        )
        executions = self._run_automations(workspace_id, event, contact_id)
        return InboundProcessResult(
            message_id=message_id,
            conversation_id=conversation_id,
            is_first_message=is_first_message,
            executions=executions,
        )

    def process_status(self, update: StatusUpdate) -> bool:
        """Apply one delivery status; False when no stored message matches."""
        workspace_id = self.identity.resolve_workspace(update.phone_number_id, update.display_phone)
        message = self.ledger.mark_status(workspace_id, update.external_id, update.status)
        self.uow.commit()
        return message is not None

    def _handle_status(self, raw: dict, change: ChangeValue, summary: IngestionSummary) -> None:
        update = parse_status_update(raw, change)
        if update is None:
            summary.statuses_ignored += 1
            STATUS_UPDATES.labels(status=str(raw.get("status")), result="ignored").inc()
            return
        try:
            applied = self.process_status(update)
        except WorkspaceResolutionError as exc:
            summary.statuses_ignored += 1
            STATUS_UPDATES.labels(status=update.status.value, result="unresolved").inc()
            logger.warning("status_update_unresolved external_id=%s error=%s", update.external_id, exc.detail)
            return
        except Exception as exc:
            self.uow.rollback()
            summary.statuses_ignored += 1
            STATUS_UPDATES.labels(status=update.status.value, result="error").inc()
            logger.exception("status_update_failed external_id=%s error=%s", update.external_id, exc)
            return
        if applied:
            summary.statuses_applied += 1
            STATUS_UPDATES.labels(status=update.status.value, result="applied").inc()
        else:
            summary.statuses_ignored += 1
            STATUS_UPDATES.labels(status=update.status.value, result="unknown").inc()

    def _run_automations(
        self,
        workspace_id: uuid.UUID,
        event: InboundEvent,
        contact_id: uuid.UUID,
    ) -> list[RuleExecution]:
        executions: list[RuleExecution] = []
        for rule in self.engine.match(workspace_id, event):
            # Re-read so each rule sees tags and state written by earlier rules.
            contact = self.repositories.contacts.get(contact_id)
            if contact is None:
                break
            try:
                executions.append(self.executor.execute(rule, workspace_id, event, contact))
            except Exception as exc:
                self.uow.rollback()
                logger.exception("automation_rule_failed rule_id=%s error=%s", rule.id, exc)
        return executions
