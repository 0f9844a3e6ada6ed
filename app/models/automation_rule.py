import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class AutomationTrigger(enum.Enum):
    keyword_match = "keyword_match"
    new_contact = "new_contact"
    tag_added = "tag_added"


class AutomationRuleStatus(enum.Enum):
    active = "active"
    inactive = "inactive"


class AutomationLogOutcome(enum.Enum):
    success = "success"
    partial_failure = "partial_failure"
    failure = "failure"


class AutomationRule(Base):
    __tablename__ = "automation_rules"
    __table_args__ = (
        Index(
            "ix_automation_rules_workspace_status",
            "workspace_id",
            "status",
            "created_at",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    trigger: Mapped[AutomationTrigger] = mapped_column(Enum(AutomationTrigger), nullable=False)
    conditions: Mapped[dict | None] = mapped_column(JSON)
    actions: Mapped[list | None] = mapped_column(JSON)
    status: Mapped[AutomationRuleStatus] = mapped_column(
        Enum(AutomationRuleStatus), default=AutomationRuleStatus.active
    )
    execution_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    logs = relationship("AutomationRuleLog", back_populates="rule")


class AutomationRuleLog(Base):
    __tablename__ = "automation_rule_logs"
    __table_args__ = (
        Index("ix_automation_rule_logs_rule_id", "rule_id"),
        Index("ix_automation_rule_logs_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    rule_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("automation_rules.id"), nullable=False)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    outcome: Mapped[AutomationLogOutcome] = mapped_column(Enum(AutomationLogOutcome), nullable=False)
    actions_executed: Mapped[list | None] = mapped_column(JSON)
    duration_ms: Mapped[int | None] = mapped_column(Integer)
    error: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    rule = relationship("AutomationRule", back_populates="logs")
