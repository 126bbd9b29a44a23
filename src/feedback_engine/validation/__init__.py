"""
Response validation engine.
"""

from feedback_engine.validation.answers import (
    AnswerValue,
    OutcomeKind,
    ValidationOutcome,
    is_empty_value,
)
from feedback_engine.validation.dialog_text import coerce_dialog_text
from feedback_engine.validation.validator import validate

__all__ = [
    "AnswerValue",
    "OutcomeKind",
    "ValidationOutcome",
    "coerce_dialog_text",
    "is_empty_value",
    "validate",
]
