"""Action executor for automation rules.

Runs a matched rule's actions in order against the triggering message.
Each action is wrapped in try/except and committed on its own, so one
failing action neither undoes nor blocks the others. The rule's execution
counter is bumped exactly once per run whatever the action outcomes.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, assert_never

import httpx

from app.config import settings
from app.models.automation_rule import AutomationLogOutcome, AutomationRule, AutomationRuleLog
from app.models.contact import Contact
from app.models.conversation import Message
from app.models.enums import MessageDirection, MessageStatus, MessageType
from app.repositories.interfaces import AutomationRuleRepository, ContactRepository, UnitOfWork
from app.schemas.automation_rule import (
    Action,
    AddTagAction,
    AssignAgentAction,
    SendMessageAction,
    WebhookAction,
    parse_action,
)
from app.schemas.inbox import InboundEvent
from app.services.common import now
from app.services.inbox.context import get_inbox_logger
from app.services.inbox.conversations import ConversationTracker
from app.services.inbox.errors import InboxExternalError
from app.services.inbox.ledger import MessageLedger
from app.services.inbox.observability import AUTOMATION_EXECUTIONS, AUTOMATION_WEBHOOK_CALLS

logger = get_inbox_logger(__name__)

AUTOMATION_SENDER_ID = "system_automation"


@dataclass(frozen=True)
class RuleExecution:
    rule_id: uuid.UUID
    outcome: AutomationLogOutcome
    actions: list[dict] = field(default_factory=list)


def contact_payload(contact: Contact) -> dict[str, Any]:
    source = contact.source
    return {
        "id": str(contact.id),
        "phone": contact.phone,
        "name": contact.name,
        "tags": contact.tags,
        "source": source.value if source is not None else None,
    }


class AutomationExecutor:
    def __init__(
        self,
        *,
        contacts: ContactRepository,
        rules: AutomationRuleRepository,
        tracker: ConversationTracker,
        ledger: MessageLedger,
        uow: UnitOfWork,
        http_client: httpx.Client | None = None,
        webhook_timeout: float | None = None,
    ):
        self.contacts = contacts
        self.rules = rules
        self.tracker = tracker
        self.ledger = ledger
        self.uow = uow
        self.http_client = http_client
        self.webhook_timeout = webhook_timeout or settings.automation_webhook_timeout_seconds

    def execute(
        self,
        rule: AutomationRule,
        workspace_id: uuid.UUID,
        event: InboundEvent,
        contact: Contact,
    ) -> RuleExecution:
        rule_id = rule.id
        trigger = rule.trigger.value
        start = time.monotonic()
        results: list[dict] = []

        for raw in rule.actions or []:
            action_type = raw.get("type", "") if isinstance(raw, dict) else ""
            try:
                action = parse_action(raw)
                self._dispatch(action, rule, workspace_id, event, contact)
                self.uow.commit()
                results.append({"action_type": action_type, "success": True, "error": None})
            except Exception as exc:
                self.uow.rollback()
                logger.exception("automation_action_failed rule_id=%s action=%s error=%s", rule_id, action_type, exc)
                results.append({"action_type": action_type, "success": False, "error": str(exc)})

        duration_ms = int((time.monotonic() - start) * 1000)
        all_success = all(r["success"] for r in results)
        any_success = any(r["success"] for r in results)
        if all_success:
            outcome = AutomationLogOutcome.success
            error = None
        elif any_success:
            outcome = AutomationLogOutcome.partial_failure
            error = "; ".join(r["error"] for r in results if r.get("error"))
        else:
            outcome = AutomationLogOutcome.failure
            error = "; ".join(r["error"] for r in results if r.get("error"))

        self.rules.increment_executions(rule_id, now())
        self.rules.add_log(
            AutomationRuleLog(
                rule_id=rule_id,
                conversation_id=event.conversation_id,
                outcome=outcome,
                actions_executed=results,
                duration_ms=duration_ms,
                error=error,
            )
        )
        self.uow.commit()

        AUTOMATION_EXECUTIONS.labels(trigger=trigger, outcome=outcome.value).inc()
        logger.info(
            "automation_rule_executed rule_id=%s conversation_id=%s outcome=%s duration_ms=%d",
            rule_id,
            event.conversation_id,
            outcome.value,
            duration_ms,
        )
        return RuleExecution(rule_id=rule_id, outcome=outcome, actions=results)

    def _dispatch(
        self,
        action: Action,
        rule: AutomationRule,
        workspace_id: uuid.UUID,
        event: InboundEvent,
        contact: Contact,
    ) -> None:
        match action:
            case SendMessageAction():
                self._send_message(action, workspace_id, contact)
            case AddTagAction(value=tag):
                self.contacts.add_tag(contact.id, tag)
            case AssignAgentAction(value=agent_id):
                self.tracker.assign(event.conversation_id, agent_id)
            case WebhookAction():
                self._call_webhook(action, rule, workspace_id, event, contact)
            case _:
                assert_never(action)

    def _send_message(self, action: SendMessageAction, workspace_id: uuid.UUID, contact: Contact) -> None:
        conversation = self.tracker.find_for_contact(workspace_id, contact.id)
        if conversation is None:
            logger.info("automation_reply_skipped reason=no_conversation contact_id=%s", contact.id)
            return
        sent_at = now()
        self.ledger.append(
            Message(
                id=uuid.uuid4(),
                workspace_id=workspace_id,
                conversation_id=conversation.id,
                direction=MessageDirection.outbound,
                type=MessageType.template if action.template_id else MessageType.text,
                body=action.value,
                status=MessageStatus.sent,
                template_id=action.template_id,
                sender_id=AUTOMATION_SENDER_ID,
                created_at=sent_at,
            )
        )
        self.tracker.record_outbound(conversation.id, action.value, sent_at)

    def _call_webhook(
        self,
        action: WebhookAction,
        rule: AutomationRule,
        workspace_id: uuid.UUID,
        event: InboundEvent,
        contact: Contact,
    ) -> None:
        payload = {
            "workspace_id": str(workspace_id),
            "automation_name": rule.name,
            "message": event.model_dump(mode="json"),
            "contact": contact_payload(contact),
        }
        try:
            if self.http_client is not None:
                response = self.http_client.post(action.value, json=payload, timeout=self.webhook_timeout)
            else:
                with httpx.Client(timeout=self.webhook_timeout) as client:
                    response = client.post(action.value, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            AUTOMATION_WEBHOOK_CALLS.labels(result="error").inc()
            raise InboxExternalError("automation_webhook_failed", f"POST {action.value} failed: {exc}") from exc
        AUTOMATION_WEBHOOK_CALLS.labels(result="ok").inc()
