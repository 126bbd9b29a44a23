"""
Session finalizer.

Turns a complete set of answers into one ``FeedbackSession`` and one
``FeedbackResponse`` per non-empty answer. Both transports end here, so the
persisted shape of a feedback session does not depend on how it was
collected.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.feedback.models import (
    FeedbackResponse,
    FeedbackSession,
    FeedbackStatus,
    Transport,
)
from feedback_engine.questions.models import QuestionDefinition
from feedback_engine.shared.exceptions import PersistenceError
from feedback_engine.shared.logging import get_logger
from feedback_engine.validation.answers import is_empty_value

logger = get_logger(__name__)


def _milliseconds(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


class SessionFinalizer:
    """Writes completed feedback sessions."""

    def __init__(self, session: AsyncSession, default_category: str = "Comments") -> None:
        """Initialize finalizer.

        Args:
            session: Async database session; the caller owns the transaction.
            default_category: Category snapshot for questions without one.
        """
        self._session = session
        self._default_category = default_category

    async def finalize(
        self,
        organization_id: UUID,
        answers: Mapping[str, Any],
        questions: Sequence[QuestionDefinition],
        transport: Transport,
        *,
        phone_number: str | None = None,
        dialog_session_id: UUID | None = None,
        metadata: Mapping[str, Any] | None = None,
        timing: Mapping[str, Any] | None = None,
        started_at: datetime | None = None,
    ) -> FeedbackSession:
        """Persist a completed feedback session.

        Answers are written in question order. Answers whose question is no
        longer in ``questions`` are kept after the known ones, without
        snapshots. Empty answers are not written.

        Args:
            organization_id: Owning organization.
            answers: Question id to JSON answer value.
            questions: Definitions the answers were collected against.
            transport: Channel the answers came from.
            phone_number: Respondent number (sms transport).
            dialog_session_id: Dialog the answers were collected in.
            metadata: Free-form client metadata.
            timing: Client timing block (``totalResponseTime``,
                ``averageQuestionTime`` in milliseconds).
            started_at: When collection began; defaults to now.

        Returns:
            The flushed FeedbackSession.

        Raises:
            PersistenceError: The database rejected a write. ``session_id``
                is set when the session row had already been flushed.
        """
        now = datetime.now(timezone.utc)
        feedback_session = FeedbackSession(
            id=uuid4(),
            organization_id=organization_id,
            status=FeedbackStatus.COMPLETED.value,
            transport=transport.value,
            started_at=started_at or now,
            completed_at=now,
            phone_number=phone_number,
            dialog_session_id=dialog_session_id,
            session_metadata=dict(metadata) if metadata else None,
            total_response_time_ms=_milliseconds((timing or {}).get("totalResponseTime")),
            avg_question_time_ms=_milliseconds((timing or {}).get("averageQuestionTime")),
            timing_metadata=dict(timing) if timing else None,
        )

        try:
            self._session.add(feedback_session)
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to create feedback session",
                extra={"organization_id": str(organization_id), "error": str(e)},
            )
            raise PersistenceError("Failed to create feedback session") from e

        rows = self._build_responses(feedback_session, answers, questions)
        try:
            self._session.add_all(rows)
            await self._session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to save feedback responses",
                extra={"session_id": str(feedback_session.id), "error": str(e)},
            )
            raise PersistenceError(
                "Failed to save feedback responses",
                session_id=feedback_session.id,
            ) from e

        logger.info(
            "Feedback session finalized",
            extra={
                "session_id": str(feedback_session.id),
                "organization_id": str(organization_id),
                "transport": transport.value,
                "response_count": len(rows),
            },
        )
        return feedback_session

    def _build_responses(
        self,
        feedback_session: FeedbackSession,
        answers: Mapping[str, Any],
        questions: Sequence[QuestionDefinition],
    ) -> list[FeedbackResponse]:
        rows: list[FeedbackResponse] = []
        known = set()

        for question in sorted(questions, key=lambda q: q.ordinal):
            known.add(question.id)
            value = answers.get(question.id)
            if is_empty_value(value):
                continue
            rows.append(
                FeedbackResponse(
                    session_id=feedback_session.id,
                    organization_id=feedback_session.organization_id,
                    question_id=question.id,
                    position=len(rows),
                    response_value=value,
                    question_category=question.category or self._default_category,
                    question_text_snapshot=question.text,
                    question_type_snapshot=question.type,
                )
            )

        orphans = [qid for qid in answers if qid not in known and not is_empty_value(answers[qid])]
        if orphans:
            logger.warning(
                "Answers for questions no longer in the catalog",
                extra={"session_id": str(feedback_session.id), "question_ids": orphans},
            )
        for question_id in orphans:
            rows.append(
                FeedbackResponse(
                    session_id=feedback_session.id,
                    organization_id=feedback_session.organization_id,
                    question_id=question_id,
                    position=len(rows),
                    response_value=answers[question_id],
                    question_category=self._default_category,
                )
            )
        return rows
