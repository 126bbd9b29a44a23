"""
SQLAlchemy models for completed feedback.

Rows here are only ever written by the session finalizer: one session per
completed submission or dialog, one response per captured answer.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_engine.shared.database import Base


class Transport(str, Enum):
    """Channel a feedback session was collected through."""

    API = "api"
    SMS = "sms"


class FeedbackStatus(str, Enum):
    COMPLETED = "completed"


class FeedbackSession(Base):
    """One completed feedback submission."""

    __tablename__ = "feedback_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=FeedbackStatus.COMPLETED.value,
    )
    transport: Mapped[str] = mapped_column(String(10), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Dialog this session was finalized from (sms transport only)
    dialog_session_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    # ``metadata`` is reserved on declarative classes
    session_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    # Client-side timing, batch transport only
    total_response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_question_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timing_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    responses: Mapped[list["FeedbackResponse"]] = relationship(
        "FeedbackResponse",
        back_populates="session",
        lazy="selectin",
        order_by="FeedbackResponse.position",
    )

    def __repr__(self) -> str:
        return f"<FeedbackSession(id={self.id}, transport={self.transport})>"


class FeedbackResponse(Base):
    """One persisted answer with snapshots of its question."""

    __tablename__ = "feedback_responses"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("feedback_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    response_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    question_category: Mapped[str] = mapped_column(String(100), nullable=False)
    question_text_snapshot: Mapped[str | None] = mapped_column(Text, nullable=True)
    question_type_snapshot: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Filled in later by the scoring job
    score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    session: Mapped[FeedbackSession] = relationship(
        "FeedbackSession",
        back_populates="responses",
    )

    def __repr__(self) -> str:
        return f"<FeedbackResponse(session={self.session_id}, question={self.question_id})>"
