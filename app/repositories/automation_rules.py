from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update

from app.models.automation_rule import AutomationRule, AutomationRuleLog, AutomationRuleStatus
from app.repositories.base import BaseRepository


class AutomationRuleRepository(BaseRepository[AutomationRule]):
    model_class = AutomationRule

    def list_active(self, workspace_id: uuid.UUID) -> list[AutomationRule]:
        return list(
            self.db.scalars(
                select(AutomationRule)
                .where(
                    AutomationRule.workspace_id == workspace_id,
                    AutomationRule.status == AutomationRuleStatus.active,
                )
                .order_by(AutomationRule.created_at.asc(), AutomationRule.id.asc())
            ).all()
        )

    def increment_executions(self, rule_id: uuid.UUID, at: datetime) -> None:
        self.db.execute(
            update(AutomationRule)
            .where(AutomationRule.id == rule_id)
            .values(execution_count=AutomationRule.execution_count + 1, last_triggered_at=at)
            .execution_options(synchronize_session="fetch")
        )

    def add_log(self, log: AutomationRuleLog) -> None:
        self.db.add(log)
        self.db.flush()
