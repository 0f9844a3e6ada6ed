from __future__ import annotations

from typing import TYPE_CHECKING

from app.repositories.automation_rules import AutomationRuleRepository
from app.repositories.contacts import ContactRepository
from app.repositories.conversations import ConversationRepository
from app.repositories.interfaces import Repositories
from app.repositories.messages import MessageRepository
from app.repositories.workspaces import WorkspaceRepository

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def build_repositories(db: Session) -> Repositories:
    return Repositories(
        workspaces=WorkspaceRepository(db),
        contacts=ContactRepository(db),
        conversations=ConversationRepository(db),
        messages=MessageRepository(db),
        rules=AutomationRuleRepository(db),
        uow=db,
    )
