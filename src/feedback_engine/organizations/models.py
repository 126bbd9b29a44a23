"""
SQLAlchemy models for organizations.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from feedback_engine.shared.database import Base


class Organization(Base):
    """Organization owning a question catalog and an SMS webhook."""

    __tablename__ = "organizations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Secret embedded in the carrier gateway callback path
    webhook_secret: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )

    # Per-organization dialog overrides; fall back to settings when NULL
    thank_you_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    opt_out_keyword: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"
