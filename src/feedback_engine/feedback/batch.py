"""
Batch submission handler.

Validates a complete answer set against the question list the caller
rendered, then hands it to the session finalizer. Validation failures are
returned as data; only storage failures raise.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from feedback_engine.feedback.finalizer import SessionFinalizer
from feedback_engine.feedback.models import Transport
from feedback_engine.questions.models import QuestionDefinition
from feedback_engine.shared.logging import get_logger
from feedback_engine.validation.answers import OutcomeKind, ValidationOutcome
from feedback_engine.validation.validator import validate

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Result of one batch submission: a session id or the first failure."""

    session_id: UUID | None = None
    failure: ValidationOutcome | None = None

    @property
    def success(self) -> bool:
        return self.failure is None and self.session_id is not None


class BatchSubmissionHandler:
    """Validates and persists single-shot submissions."""

    def __init__(self, finalizer: SessionFinalizer) -> None:
        self._finalizer = finalizer

    def check(
        self,
        responses: Mapping[str, Any],
        questions: Sequence[QuestionDefinition],
    ) -> tuple[dict[str, Any], ValidationOutcome | None]:
        """Validate every answer without touching storage.

        Returns:
            The JSON values to persist, and the first failing outcome or None.
        """
        by_id = {question.id: question for question in questions}
        accepted: dict[str, Any] = {}

        for question_id, raw_value in responses.items():
            question = by_id.get(question_id)
            if question is None:
                return {}, ValidationOutcome.failure(
                    OutcomeKind.UNKNOWN_QUESTION,
                    question_id,
                    f"Unknown question ID: {question_id}",
                )

            outcome = validate(question, raw_value)
            if not outcome.is_valid:
                return {}, outcome
            if outcome.has_answer:
                accepted[question_id] = outcome.answer.to_json()

        for question in questions:
            if question.required and question.id not in responses:
                return {}, ValidationOutcome.failure(
                    OutcomeKind.MISSING_REQUIRED,
                    question.id,
                    f'Response is required for question: "{question.text or question.id}"',
                )

        return accepted, None

    async def submit(
        self,
        organization_id: UUID,
        responses: Mapping[str, Any],
        questions: Sequence[QuestionDefinition],
        *,
        metadata: Mapping[str, Any] | None = None,
        timing: Mapping[str, Any] | None = None,
    ) -> BatchResult:
        """Validate a submission and persist it when every answer passes.

        Args:
            organization_id: Organization the API key belongs to.
            responses: Question id to raw answer value.
            questions: Question definitions supplied with the submission.
            metadata: Free-form client metadata.
            timing: Client timing block.

        Returns:
            BatchResult with the new session id, or the first failure.

        Raises:
            PersistenceError: Storage failed; nothing partial is committed
                by this handler, but the caller owns the transaction.
        """
        accepted, failure = self.check(responses, questions)
        if failure is not None:
            logger.info(
                "Batch submission rejected",
                extra={
                    "organization_id": str(organization_id),
                    "question_id": failure.question_id,
                    "outcome": failure.kind.value,
                },
            )
            return BatchResult(failure=failure)

        feedback_session = await self._finalizer.finalize(
            organization_id,
            accepted,
            questions,
            Transport.API,
            metadata=metadata,
            timing=timing,
        )
        return BatchResult(session_id=feedback_session.id)
