"""
Organization repository for database operations.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.organizations.models import Organization


class OrganizationRepository:
    """Repository for organization lookups."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get_by_webhook_secret(self, webhook_secret: str) -> Organization | None:
        """Get the organization a gateway callback belongs to.

        Args:
            webhook_secret: Secret taken from the callback path.

        Returns:
            Organization if the secret is known, None otherwise.
        """
        if not webhook_secret:
            return None
        stmt = select(Organization).where(Organization.webhook_secret == webhook_secret)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
