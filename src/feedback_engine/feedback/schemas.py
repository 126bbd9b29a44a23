"""
Pydantic schemas for the batch feedback API.
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from feedback_engine.questions.schemas import QuestionSchema


class FeedbackSubmission(BaseModel):
    """Body of ``POST /api/v1/feedback``."""

    model_config = ConfigDict(populate_by_name=True)

    responses: dict[str, Any] = Field(..., description="Question id to answer value")
    questions: list[QuestionSchema] = Field(
        ...,
        description="Question definitions the answers were collected against",
    )
    timing_data: dict[str, Any] | None = Field(None, alias="timingData")
    metadata: dict[str, Any] | None = None


class FeedbackCreatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session_id: UUID = Field(..., alias="sessionId")


class ErrorResponse(BaseModel):
    """Error body shared by every JSON endpoint."""

    error: str
