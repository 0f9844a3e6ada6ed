from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from app.models.automation_rule import AutomationLogOutcome, AutomationRuleStatus, AutomationTrigger

# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class KeywordMatchTrigger(BaseModel):
    kind: Literal["keyword_match"] = "keyword_match"
    keyword: str = ""

    @field_validator("keyword", mode="before")
    @classmethod
    def _coerce_keyword(cls, value: Any) -> Any:
        return "" if value is None else value


class NewContactTrigger(BaseModel):
    kind: Literal["new_contact"] = "new_contact"


class TagAddedTrigger(BaseModel):
    kind: Literal["tag_added"] = "tag_added"
    tag: str | None = None


Trigger = Annotated[
    KeywordMatchTrigger | NewContactTrigger | TagAddedTrigger,
    Field(discriminator="kind"),
]

_trigger_adapter: TypeAdapter[Trigger] = TypeAdapter(Trigger)


def parse_trigger(trigger: AutomationTrigger | str, conditions: dict | None) -> Trigger:
    kind = trigger.value if isinstance(trigger, AutomationTrigger) else str(trigger)
    return _trigger_adapter.validate_python({**(conditions or {}), "kind": kind})


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_message_alias(cls, data: Any) -> Any:
        # Older rules store the action payload under "message" instead of "value".
        if isinstance(data, dict) and not data.get("value") and data.get("message"):
            data = {**data, "value": data["message"]}
        return data


class SendMessageAction(_ActionBase):
    type: Literal["send_message", "send_template"]
    template_id: str | None = None


class AddTagAction(_ActionBase):
    type: Literal["add_tag"]
    value: str = Field(min_length=1, max_length=80)


class AssignAgentAction(_ActionBase):
    type: Literal["assign_agent"]
    value: str = Field(min_length=1, max_length=120)


class WebhookAction(_ActionBase):
    type: Literal["webhook"]
    value: str = Field(min_length=1)

    @field_validator("value")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("webhook url must be http(s)")
        return value


Action = Annotated[
    SendMessageAction | AddTagAction | AssignAgentAction | WebhookAction,
    Field(discriminator="type"),
]

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(raw: dict) -> Action:
    return _action_adapter.validate_python(raw)


# ---------------------------------------------------------------------------
# CRUD payloads
# ---------------------------------------------------------------------------


class AutomationRuleBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    trigger: AutomationTrigger
    conditions: dict[str, Any] = Field(default_factory=dict)
    actions: list[Action] = Field(min_length=1)

    @model_validator(mode="after")
    def _validate_trigger_conditions(self) -> AutomationRuleBase:
        parse_trigger(self.trigger, self.conditions)
        return self


class AutomationRuleCreate(AutomationRuleBase):
    workspace_id: UUID
    status: AutomationRuleStatus = AutomationRuleStatus.active


class AutomationRuleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    conditions: dict[str, Any] | None = None
    actions: list[Action] | None = Field(default=None, min_length=1)
    status: AutomationRuleStatus | None = None


class AutomationRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    name: str
    trigger: AutomationTrigger
    conditions: dict[str, Any] | None = None
    actions: list[dict[str, Any]] | None = None
    status: AutomationRuleStatus
    execution_count: int = 0
    last_triggered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AutomationRuleLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rule_id: UUID
    conversation_id: UUID | None = None
    outcome: AutomationLogOutcome
    actions_executed: list[dict[str, Any]] | None = None
    duration_ms: int | None = None
    error: str | None = None
    created_at: datetime
