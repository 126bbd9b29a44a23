"""
Batch feedback API router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.auth.api_keys import (
    ApiKeyContext,
    ApiRequestLogRepository,
    client_ip,
    require_api_key,
)
from feedback_engine.config import Settings, get_settings
from feedback_engine.feedback.batch import BatchSubmissionHandler
from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.feedback.schemas import (
    ErrorResponse,
    FeedbackCreatedResponse,
    FeedbackSubmission,
)
from feedback_engine.questions.catalog import QuestionCatalogRepository
from feedback_engine.questions.schemas import QuestionSchema
from feedback_engine.shared.database import get_db_session
from feedback_engine.shared.exceptions import PersistenceError
from feedback_engine.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["feedback"])


def get_batch_handler(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> BatchSubmissionHandler:
    """Dependency for the batch submission handler."""
    return BatchSubmissionHandler(
        SessionFinalizer(session, default_category=settings.default_question_category)
    )


@router.post(
    "/feedback",
    response_model=FeedbackCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid submission"},
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        500: {"model": ErrorResponse, "description": "Submission could not be stored"},
    },
)
async def submit_feedback(
    payload: FeedbackSubmission,
    request: Request,
    api_key: Annotated[ApiKeyContext, Depends(require_api_key)],
    handler: Annotated[BatchSubmissionHandler, Depends(get_batch_handler)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> FeedbackCreatedResponse | JSONResponse:
    """Submit a complete feedback session.

    Every answer must belong to one of the supplied questions and pass
    validation; otherwise nothing is stored.
    """
    audit = ApiRequestLogRepository(session)
    questions = [q.to_definition(ordinal) for ordinal, q in enumerate(payload.questions)]

    try:
        result = await handler.submit(
            api_key.organization_id,
            payload.responses,
            questions,
            metadata=payload.metadata,
            timing=payload.timing_data,
        )
    except PersistenceError as e:
        await session.rollback()
        logger.error(
            "Feedback submission failed",
            extra={
                "organization_id": str(api_key.organization_id),
                "session_id": str(e.session_id) if e.session_id else None,
            },
        )
        await audit.record(
            request.url.path,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            api_key_id=api_key.api_key_id,
            organization_id=api_key.organization_id,
            ip_address=client_ip(request),
            error_message=e.message,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to save feedback"},
        )

    if not result.success:
        await audit.record(
            request.url.path,
            status.HTTP_400_BAD_REQUEST,
            api_key_id=api_key.api_key_id,
            organization_id=api_key.organization_id,
            ip_address=client_ip(request),
            error_message=result.failure.message,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": result.failure.message},
        )

    await audit.record(
        request.url.path,
        status.HTTP_201_CREATED,
        api_key_id=api_key.api_key_id,
        organization_id=api_key.organization_id,
        ip_address=client_ip(request),
    )
    logger.info(
        "Feedback submitted",
        extra={
            "organization_id": str(api_key.organization_id),
            "session_id": str(result.session_id),
        },
    )
    return FeedbackCreatedResponse(session_id=result.session_id)


@router.get(
    "/questions",
    response_model=list[QuestionSchema],
    responses={401: {"model": ErrorResponse, "description": "Missing or invalid API key"}},
)
async def list_questions(
    request: Request,
    api_key: Annotated[ApiKeyContext, Depends(require_api_key)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> list[QuestionSchema]:
    """Get the organization's active questions in display order."""
    definitions = await QuestionCatalogRepository(session).list_active(api_key.organization_id)
    await ApiRequestLogRepository(session).record(
        request.url.path,
        status.HTTP_200_OK,
        api_key_id=api_key.api_key_id,
        organization_id=api_key.organization_id,
        ip_address=client_ip(request),
    )
    return [QuestionSchema.from_definition(definition) for definition in definitions]
