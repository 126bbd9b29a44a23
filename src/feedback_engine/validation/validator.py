"""
Response validator.

Checks one answer value against one question definition. Used identically by
the batch API and, under the ``validated`` policy, by the SMS dialog.
Never raises for a bad answer: every failure is a ``ValidationOutcome``.
"""

import math
from typing import Any, Callable

from feedback_engine.questions.models import QuestionDefinition, QuestionType
from feedback_engine.shared.logging import get_logger
from feedback_engine.validation.answers import (
    ChoiceAnswer,
    MatrixAnswer,
    MultiChoiceAnswer,
    NumericAnswer,
    OutcomeKind,
    RankingAnswer,
    TextAnswer,
    UnstructuredAnswer,
    ValidationOutcome,
    is_empty_value,
)

logger = get_logger(__name__)


def _is_number(value: Any) -> bool:
    # bool is an int subclass; a JSON true is not a rating
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def _label(question: QuestionDefinition) -> str:
    return question.text or question.id


def _validate_numeric(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    scale = question.scale
    if _is_number(value) and (scale is None or scale.contains(value)):
        return ValidationOutcome.valid(question.id, NumericAnswer(value))
    if scale is None:
        expected = "a number"
    else:
        expected = f"a number between {scale.min} and {scale.max}"
    return ValidationOutcome.failure(
        OutcomeKind.OUT_OF_RANGE,
        question.id,
        f'Invalid value for question "{_label(question)}". Expected {expected}, but got {value!r}.',
    )


def _validate_single_choice(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    if isinstance(value, str) and value in question.options:
        return ValidationOutcome.valid(question.id, ChoiceAnswer(value))
    return ValidationOutcome.failure(
        OutcomeKind.INVALID_OPTION,
        question.id,
        f'Invalid value for single-choice question "{_label(question)}". '
        "Expected one of the provided options.",
    )


def _validate_multi_choice(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    if isinstance(value, list) and all(
        isinstance(item, str) and item in question.options for item in value
    ):
        return ValidationOutcome.valid(question.id, MultiChoiceAnswer(tuple(value)))
    return ValidationOutcome.failure(
        OutcomeKind.INVALID_OPTION,
        question.id,
        f'Invalid value for multi-choice question "{_label(question)}". '
        "Expected an array of strings from the provided options.",
    )


def _validate_ranking(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    if (
        isinstance(value, list)
        and all(isinstance(item, str) for item in value)
        and len(value) == len(question.options)
        and len(set(value)) == len(value)
        and set(value) == set(question.options)
    ):
        return ValidationOutcome.valid(question.id, RankingAnswer(tuple(value)))
    return ValidationOutcome.failure(
        OutcomeKind.INCOMPLETE_RANKING,
        question.id,
        f'Invalid value for ranking question "{_label(question)}". '
        "All options must be ranked exactly once.",
    )


def _validate_matrix(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    if not isinstance(value, dict):
        return ValidationOutcome.failure(
            OutcomeKind.INVALID_SUB_ANSWER,
            question.id,
            f'Invalid value for matrix question "{_label(question)}". Expected an object.',
        )
    rows: dict[str, int | float] = {}
    for row in question.options:
        if row not in value:
            if question.required:
                return ValidationOutcome.failure(
                    OutcomeKind.MISSING_REQUIRED,
                    question.id,
                    f'Missing response for sub-question "{row}" in matrix question "{_label(question)}".',
                )
            continue
        if not _is_number(value[row]):
            return ValidationOutcome.failure(
                OutcomeKind.INVALID_SUB_ANSWER,
                question.id,
                f'Invalid value for sub-question "{row}" in matrix question "{_label(question)}". '
                "Expected a number.",
            )
        rows[row] = value[row]
    return ValidationOutcome.valid(question.id, MatrixAnswer(rows))


def _validate_text(question: QuestionDefinition, value: Any) -> ValidationOutcome:
    if isinstance(value, str):
        return ValidationOutcome.valid(question.id, TextAnswer(value))
    return ValidationOutcome.failure(
        OutcomeKind.INVALID_TEXT,
        question.id,
        f'Invalid value for text question "{_label(question)}". Expected a string.',
    )


_CHECKS: dict[QuestionType, Callable[[QuestionDefinition, Any], ValidationOutcome]] = {
    QuestionType.STAR: _validate_numeric,
    QuestionType.NPS: _validate_numeric,
    QuestionType.SLIDER: _validate_numeric,
    QuestionType.LIKERT: _validate_numeric,
    QuestionType.EMOJI: _validate_numeric,
    QuestionType.SINGLE_CHOICE: _validate_single_choice,
    QuestionType.MULTI_CHOICE: _validate_multi_choice,
    QuestionType.RANKING: _validate_ranking,
    QuestionType.MATRIX: _validate_matrix,
    QuestionType.TEXT: _validate_text,
}


def validate(question: QuestionDefinition, raw_value: Any) -> ValidationOutcome:
    """Validate one answer against its question.

    Args:
        question: Question definition the answer belongs to.
        raw_value: Answer as received (JSON-decoded or coerced dialog text).

    Returns:
        Outcome carrying the kind, the question id, a readable message and,
        when accepted, the typed answer.
    """
    if is_empty_value(raw_value):
        if question.required:
            return ValidationOutcome.failure(
                OutcomeKind.MISSING_REQUIRED,
                question.id,
                f'Response is required for question: "{_label(question)}"',
            )
        return ValidationOutcome(OutcomeKind.SKIPPED, question.id)

    question_type = question.question_type
    if question_type is None:
        logger.warning(
            "Unknown question type; skipping validation",
            extra={"question_id": question.id, "question_type": question.type},
        )
        return ValidationOutcome(
            OutcomeKind.UNCHECKED,
            question.id,
            message=f'Unknown question type "{question.type}"',
            answer=UnstructuredAnswer(raw_value),
        )

    return _CHECKS[question_type](question, raw_value)
