"""
Question catalog repository.

Reads the active, ordered catalog of an organization and turns rows into
immutable ``QuestionDefinition`` values.
"""

from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.questions.models import QuestionDefinition, ScaleConfig
from feedback_engine.questions.persistence_models import Question


class QuestionCatalogProtocol(Protocol):
    """Protocol for catalog lookups."""

    async def list_active(self, organization_id: UUID) -> list[QuestionDefinition]:
        """Get the organization's active questions in ordinal order."""
        ...


def _number(value: float | None) -> float | int | None:
    if value is None:
        return None
    return int(value) if float(value).is_integer() else value


def to_definition(row: Question, ordinal: int) -> QuestionDefinition:
    """Convert a catalog row into a question definition.

    Args:
        row: ORM question row.
        ordinal: Zero-based position of the question in the active catalog.

    Returns:
        Immutable question definition.
    """
    scale = None
    if row.scale_min is not None and row.scale_max is not None:
        scale = ScaleConfig(
            min=_number(row.scale_min),
            max=_number(row.scale_max),
            min_label=row.scale_min_label,
            max_label=row.scale_max_label,
        )
    return QuestionDefinition(
        id=row.id,
        type=row.question_type,
        text=row.question_text,
        ordinal=ordinal,
        required=bool(row.is_required),
        category=row.category,
        options=tuple(str(option) for option in (row.options or [])),
        scale=scale,
    )


class QuestionCatalogRepository:
    """Repository for catalog reads."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def list_active(self, organization_id: UUID) -> list[QuestionDefinition]:
        """Get the organization's active questions in ordinal order.

        Args:
            organization_id: Organization UUID.

        Returns:
            Question definitions; ordinals are positions in this list.
        """
        stmt = (
            select(Question)
            .where(
                Question.organization_id == organization_id,
                Question.is_active.is_(True),
            )
            .order_by(Question.order_index.asc(), Question.created_at.asc())
        )
        result = await self._session.execute(stmt)
        rows: Sequence[Question] = result.scalars().all()
        return [to_definition(row, ordinal) for ordinal, row in enumerate(rows)]
