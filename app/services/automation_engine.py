"""Trigger evaluation for automation rules.

Selects which of a workspace's active rules fire for an inbound message
event. Trigger matching itself is pure logic over the parsed trigger
variant; only rule loading touches storage.
"""

from __future__ import annotations

import logging
import uuid
from typing import assert_never

from pydantic import ValidationError

from app.models.automation_rule import AutomationRule
from app.repositories.interfaces import AutomationRuleRepository
from app.schemas.automation_rule import (
    KeywordMatchTrigger,
    NewContactTrigger,
    TagAddedTrigger,
    Trigger,
    parse_trigger,
)
from app.schemas.inbox import InboundEvent

logger = logging.getLogger(__name__)


def trigger_fires(trigger: Trigger, event: InboundEvent) -> bool:
    match trigger:
        case KeywordMatchTrigger(keyword=keyword):
            needle = keyword.casefold()
            if not needle:
                return False
            return needle in (event.body or "").casefold()
        case NewContactTrigger():
            return event.is_first_message
        case TagAddedTrigger():
            # Fired from tag mutations, never from inbound messages.
            return False
        case _:
            assert_never(trigger)


class AutomationRuleEngine:
    def __init__(self, rules: AutomationRuleRepository):
        self.rules = rules

    def match(self, workspace_id: uuid.UUID, event: InboundEvent) -> list[AutomationRule]:
        """All active rules of the workspace whose trigger fires, in storage order."""
        matched: list[AutomationRule] = []
        for rule in self.rules.list_active(workspace_id):
            try:
                trigger = parse_trigger(rule.trigger, rule.conditions)
            except ValidationError as exc:
                logger.warning("automation_rule_invalid_trigger rule_id=%s error=%s", rule.id, exc)
                continue
            if trigger_fires(trigger, event):
                matched.append(rule)
        logger.debug(
            "automation_rules_matched workspace_id=%s conversation_id=%s count=%d",
            workspace_id,
            event.conversation_id,
            len(matched),
        )
        return matched
