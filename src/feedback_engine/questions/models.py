"""
Domain models for the question catalog.

Question definitions are owned by the catalog; validation and dialog code only
read them. They are immutable for the duration of one batch or one dialog turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuestionType(str, Enum):
    """Question types the validator knows how to check."""

    STAR = "star"
    NPS = "nps"
    SLIDER = "slider"
    LIKERT = "likert"
    EMOJI = "emoji"
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    RANKING = "ranking"
    MATRIX = "matrix"
    TEXT = "text"

    @classmethod
    def parse(cls, name: str | None) -> QuestionType | None:
        """Return the matching type, or None for a name this build does not know."""
        if name is None:
            return None
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def is_numeric_scale(self) -> bool:
        return self in NUMERIC_SCALE_TYPES

    @property
    def has_options(self) -> bool:
        return self in OPTION_TYPES


NUMERIC_SCALE_TYPES = frozenset({
    QuestionType.STAR,
    QuestionType.NPS,
    QuestionType.SLIDER,
    QuestionType.LIKERT,
    QuestionType.EMOJI,
})

OPTION_TYPES = frozenset({
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTI_CHOICE,
    QuestionType.RANKING,
    QuestionType.MATRIX,
})


@dataclass(frozen=True)
class ScaleConfig:
    """Inclusive numeric bounds for scale questions."""

    min: float
    max: float
    min_label: str | None = None
    max_label: str | None = None

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class QuestionDefinition:
    """One typed question of an organization's catalog.

    ``type`` keeps the raw type name so that question types added to the
    catalog after this build still flow through unchecked.
    """

    id: str
    type: str
    text: str
    ordinal: int = 0
    required: bool = False
    category: str | None = None
    options: tuple[str, ...] = field(default_factory=tuple)
    scale: ScaleConfig | None = None

    @property
    def question_type(self) -> QuestionType | None:
        return QuestionType.parse(self.type)
