"""
Question catalog: definitions, ORM rows and the read-only repository.
"""

from feedback_engine.questions.catalog import QuestionCatalogRepository, to_definition
from feedback_engine.questions.models import (
    NUMERIC_SCALE_TYPES,
    QuestionDefinition,
    QuestionType,
    ScaleConfig,
)

__all__ = [
    "NUMERIC_SCALE_TYPES",
    "QuestionCatalogRepository",
    "QuestionDefinition",
    "QuestionType",
    "ScaleConfig",
    "to_definition",
]
