from __future__ import annotations

from app.models.enums import ChannelConnectionStatus
from app.models.workspace import ChannelConnection, Workspace
from app.repositories.base import BaseRepository


class WorkspaceRepository(BaseRepository[Workspace]):
    model_class = Workspace

    def find_connection_by_phone_number_id(self, phone_number_id: str) -> ChannelConnection | None:
        return (
            self.db.query(ChannelConnection)
            .filter(ChannelConnection.phone_number_id == phone_number_id)
            .filter(ChannelConnection.status == ChannelConnectionStatus.connected)
            .first()
        )

    def find_connection_by_phone(self, normalized_phone: str) -> ChannelConnection | None:
        return (
            self.db.query(ChannelConnection)
            .filter(ChannelConnection.normalized_phone == normalized_phone)
            .filter(ChannelConnection.status == ChannelConnectionStatus.connected)
            .order_by(ChannelConnection.connected_at.asc())
            .first()
        )
