"""Automation rules service.

CRUD for workspace automation rules and execution log queries. The
ingestion path reads rules through the repository layer instead.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.automation_rule import (
    AutomationRule,
    AutomationRuleLog,
    AutomationRuleStatus,
    AutomationTrigger,
)
from app.models.workspace import Workspace
from app.schemas.automation_rule import AutomationRuleCreate, AutomationRuleUpdate, parse_trigger
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)


class AutomationRulesManager:
    @staticmethod
    def list(
        db: Session,
        workspace_id: UUID | str,
        *,
        status: AutomationRuleStatus | None = None,
        trigger: AutomationTrigger | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AutomationRule]:
        query = db.query(AutomationRule).filter(AutomationRule.workspace_id == coerce_uuid(workspace_id))
        if status:
            query = query.filter(AutomationRule.status == status)
        if trigger:
            query = query.filter(AutomationRule.trigger == trigger)
        if search:
            query = query.filter(AutomationRule.name.ilike(f"%{search.strip()}%"))
        return (
            query.order_by(AutomationRule.created_at.asc(), AutomationRule.id.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    @staticmethod
    def get(db: Session, rule_id: UUID | str) -> AutomationRule:
        rule = db.get(AutomationRule, coerce_uuid(rule_id))
        if not rule:
            raise HTTPException(status_code=404, detail="Automation rule not found")
        return rule

    @staticmethod
    def create(db: Session, payload: AutomationRuleCreate) -> AutomationRule:
        if not db.get(Workspace, payload.workspace_id):
            raise HTTPException(status_code=404, detail="Workspace not found")
        rule = AutomationRule(
            workspace_id=payload.workspace_id,
            name=payload.name,
            trigger=payload.trigger,
            conditions=payload.conditions,
            actions=[action.model_dump(mode="json", exclude_none=True) for action in payload.actions],
            status=payload.status,
            execution_count=0,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        logger.info("automation_rule_created rule_id=%s workspace_id=%s", rule.id, rule.workspace_id)
        return rule

    @staticmethod
    def update(db: Session, rule_id: UUID | str, payload: AutomationRuleUpdate) -> AutomationRule:
        rule = AutomationRulesManager.get(db, rule_id)
        data = payload.model_dump(exclude_unset=True, exclude={"actions"})
        if data.get("conditions") is not None:
            try:
                parse_trigger(rule.trigger, data["conditions"])
            except ValidationError as exc:
                raise HTTPException(status_code=400, detail=f"Invalid trigger conditions: {exc}") from exc
        for key, value in data.items():
            setattr(rule, key, value)
        if payload.actions is not None:
            rule.actions = [action.model_dump(mode="json", exclude_none=True) for action in payload.actions]
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete(db: Session, rule_id: UUID | str) -> None:
        rule = AutomationRulesManager.get(db, rule_id)
        db.query(AutomationRuleLog).filter(AutomationRuleLog.rule_id == rule.id).delete()
        db.delete(rule)
        db.commit()

    @staticmethod
    def toggle_status(db: Session, rule_id: UUID | str) -> AutomationRule:
        rule = AutomationRulesManager.get(db, rule_id)
        if rule.status == AutomationRuleStatus.active:
            rule.status = AutomationRuleStatus.inactive
        else:
            rule.status = AutomationRuleStatus.active
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def recent_logs(db: Session, rule_id: UUID | str, limit: int = 20) -> list[AutomationRuleLog]:
        return (
            db.query(AutomationRuleLog)
            .filter(AutomationRuleLog.rule_id == coerce_uuid(rule_id))
            .order_by(AutomationRuleLog.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_by_status(db: Session, workspace_id: UUID | str) -> dict:
        results = (
            db.query(AutomationRule.status, func.count(AutomationRule.id))
            .filter(AutomationRule.workspace_id == coerce_uuid(workspace_id))
            .group_by(AutomationRule.status)
            .all()
        )
        counts = {s.value: 0 for s in AutomationRuleStatus}
        for status_val, count in results:
            if status_val:
                counts[status_val.value] = count
        counts["total"] = sum(counts.values())
        return counts


automation_rules_service = AutomationRulesManager()
