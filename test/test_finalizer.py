"""
Tests for the session finalizer.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import add_organization, choice_question, star_question, text_question
from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.feedback.models import FeedbackResponse, FeedbackSession, Transport
from feedback_engine.shared.exceptions import PersistenceError


async def _responses(session, session_id) -> list[FeedbackResponse]:
    result = await session.execute(
        select(FeedbackResponse)
        .where(FeedbackResponse.session_id == session_id)
        .order_by(FeedbackResponse.position)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_writes_session_and_responses_in_question_order(db_session) -> None:
    organization = await add_organization(db_session)
    questions = [
        star_question("q1", ordinal=0, category="Service"),
        choice_question("q2", ordinal=1),
        text_question("q3", ordinal=2),
    ]
    finalizer = SessionFinalizer(db_session)

    feedback_session = await finalizer.finalize(
        organization.id,
        {"q3": "great", "q1": 5, "q2": "A"},
        questions,
        Transport.API,
        metadata={"source": "kiosk"},
        timing={"totalResponseTime": 12000, "averageQuestionTime": 4000.7},
    )

    rows = await _responses(db_session, feedback_session.id)
    assert [row.question_id for row in rows] == ["q1", "q2", "q3"]
    assert [row.response_value for row in rows] == [5, "A", "great"]
    assert rows[0].question_category == "Service"
    assert rows[1].question_category == "Comments"
    assert rows[0].question_text_snapshot == "How would you rate us?"
    assert rows[0].question_type_snapshot == "star"
    assert all(row.score is None for row in rows)

    stored = (await db_session.execute(
        select(FeedbackSession).where(FeedbackSession.id == feedback_session.id)
    )).scalar_one()
    assert stored.status == "completed"
    assert stored.transport == "api"
    assert stored.session_metadata == {"source": "kiosk"}
    assert stored.total_response_time_ms == 12000
    assert stored.avg_question_time_ms == 4000
    assert stored.completed_at is not None


@pytest.mark.asyncio
async def test_empty_answers_are_not_written(db_session) -> None:
    organization = await add_organization(db_session)
    questions = [star_question("q1", required=False), text_question("q3", ordinal=1)]

    feedback_session = await SessionFinalizer(db_session).finalize(
        organization.id, {"q1": None, "q3": ""}, questions, Transport.SMS, phone_number="+1555"
    )

    assert await _responses(db_session, feedback_session.id) == []
    assert feedback_session.phone_number == "+1555"


@pytest.mark.asyncio
async def test_answers_for_removed_questions_are_kept_last(db_session) -> None:
    organization = await add_organization(db_session)

    feedback_session = await SessionFinalizer(db_session, default_category="General").finalize(
        organization.id, {"gone": "x", "q1": 3}, [star_question("q1")], Transport.SMS
    )

    rows = await _responses(db_session, feedback_session.id)
    assert [row.question_id for row in rows] == ["q1", "gone"]
    assert rows[1].question_category == "General"
    assert rows[1].question_text_snapshot is None


@pytest.mark.asyncio
async def test_response_failure_carries_session_id() -> None:
    session = MagicMock()
    session.flush = AsyncMock(side_effect=[None, OperationalError("INSERT", {}, Exception("disk full"))])

    with pytest.raises(PersistenceError) as exc_info:
        await SessionFinalizer(session).finalize(uuid4(), {"q1": 4}, [star_question("q1")], Transport.API)

    assert exc_info.value.session_id is not None


@pytest.mark.asyncio
async def test_session_failure_has_no_session_id() -> None:
    session = MagicMock()
    session.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))

    with pytest.raises(PersistenceError) as exc_info:
        await SessionFinalizer(session).finalize(uuid4(), {"q1": 4}, [star_question("q1")], Transport.API)

    assert exc_info.value.session_id is None
