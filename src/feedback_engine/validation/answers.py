"""
Typed answer values and validation outcomes.

An answer only exists while it is being validated; what gets persisted is
its ``to_json()`` form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class NumericAnswer:
    value: int | float

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ChoiceAnswer:
    value: str

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class MultiChoiceAnswer:
    values: tuple[str, ...]

    def to_json(self) -> Any:
        return list(self.values)


@dataclass(frozen=True)
class RankingAnswer:
    order: tuple[str, ...]

    def to_json(self) -> Any:
        return list(self.order)


@dataclass(frozen=True)
class MatrixAnswer:
    rows: Mapping[str, int | float] = field(default_factory=dict)

    def to_json(self) -> Any:
        return dict(self.rows)


@dataclass(frozen=True)
class TextAnswer:
    text: str

    def to_json(self) -> Any:
        return self.text


@dataclass(frozen=True)
class UnstructuredAnswer:
    """Value of a question type this build does not know; kept as received."""

    value: Any

    def to_json(self) -> Any:
        return self.value


AnswerValue = Union[
    NumericAnswer,
    ChoiceAnswer,
    MultiChoiceAnswer,
    RankingAnswer,
    MatrixAnswer,
    TextAnswer,
    UnstructuredAnswer,
]


class OutcomeKind(str, Enum):
    """Result category of validating one answer."""

    VALID = "valid"
    SKIPPED = "skipped"
    UNCHECKED = "unchecked"
    MISSING_REQUIRED = "missing_required"
    OUT_OF_RANGE = "out_of_range"
    INVALID_OPTION = "invalid_option"
    INCOMPLETE_RANKING = "incomplete_ranking"
    INVALID_SUB_ANSWER = "invalid_sub_answer"
    INVALID_TEXT = "invalid_text"
    UNKNOWN_QUESTION = "unknown_question"


ACCEPTED_KINDS = frozenset({OutcomeKind.VALID, OutcomeKind.SKIPPED, OutcomeKind.UNCHECKED})


@dataclass(frozen=True)
class ValidationOutcome:
    """Outcome of validating one answer against one question."""

    kind: OutcomeKind
    question_id: str
    message: str = ""
    answer: AnswerValue | None = None

    @property
    def is_valid(self) -> bool:
        return self.kind in ACCEPTED_KINDS

    @property
    def has_answer(self) -> bool:
        """True when there is a value worth persisting."""
        return self.answer is not None and self.kind in (OutcomeKind.VALID, OutcomeKind.UNCHECKED)

    @classmethod
    def valid(cls, question_id: str, answer: AnswerValue) -> ValidationOutcome:
        return cls(OutcomeKind.VALID, question_id, answer=answer)

    @classmethod
    def failure(cls, kind: OutcomeKind, question_id: str, message: str) -> ValidationOutcome:
        return cls(kind, question_id, message=message)


def is_empty_value(value: Any) -> bool:
    """None, empty string, empty list and empty mapping count as no answer."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False
