"""
SQLAlchemy model for dialog sessions.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from feedback_engine.shared.database import Base

_ACTIVE_ONLY = text("status = 'in_progress'")


class DialogSessionRecord(Base):
    """Dialog session row.

    At most one ``in_progress`` row may exist per (phone number,
    organization); the partial unique index turns a racing second insert
    into an integrity error.
    """

    __tablename__ = "dialog_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    current_ordinal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    last_delivery_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_inbound_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_inbound_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_outbound_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_dialog_sessions_active",
            "phone_number",
            "organization_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        Index("ix_dialog_sessions_lookup", "phone_number", "organization_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<DialogSessionRecord(id={self.id}, phone={self.phone_number}, "
            f"ordinal={self.current_ordinal}, version={self.version})>"
        )
