import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.enums import ChannelConnectionStatus, WorkspacePlan


class Workspace(Base):
    """Tenant account. Every contact, conversation and rule is scoped to one."""

    __tablename__ = "workspaces"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    plan: Mapped[WorkspacePlan] = mapped_column(Enum(WorkspacePlan), default=WorkspacePlan.free)
    trial_ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    whatsapp_connected: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    channel_connections = relationship("ChannelConnection", back_populates="workspace")


class ChannelConnection(Base):
    """Binding between a workspace and a WhatsApp business number."""

    __tablename__ = "channel_connections"
    __table_args__ = (Index("ix_channel_connections_normalized_phone", "normalized_phone"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id"), nullable=False
    )
    phone_number_id: Mapped[str | None] = mapped_column(String(64), unique=True)
    display_phone: Mapped[str] = mapped_column(String(40), nullable=False)
    normalized_phone: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[ChannelConnectionStatus] = mapped_column(
        Enum(ChannelConnectionStatus), default=ChannelConnectionStatus.connected
    )
    connected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    workspace = relationship("Workspace", back_populates="channel_connections")
