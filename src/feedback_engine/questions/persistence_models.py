"""
SQLAlchemy models for the question catalog.

The catalog is maintained by the admin side of the product; this service
only reads it.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from feedback_engine.shared.database import Base


class Question(Base):
    """Catalog question row."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    organization_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Option texts in display order (choice answers, ranking items, matrix rows)
    options: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    # Scale bounds
    scale_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    scale_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    scale_min_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    scale_max_label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_questions_org_active_order", "organization_id", "is_active", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, type={self.question_type}, order={self.order_index})>"
