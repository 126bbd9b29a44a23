"""
Dialog session store.

Durable, versioned storage for in-progress dialogs. Every write is
conditional on the version the caller loaded, so two gateway callbacks
racing on the same respondent cannot both advance the dialog.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.dialog.models import DialogSession, DialogStatus
from feedback_engine.dialog.persistence_models import DialogSessionRecord
from feedback_engine.shared.exceptions import StaleSessionError
from feedback_engine.shared.logging import get_logger

logger = get_logger(__name__)


class DialogSessionStoreProtocol(Protocol):
    """Protocol for dialog session storage."""

    async def load(self, phone_number: str, organization_id: UUID) -> DialogSession | None:
        """Get the in-progress session, if any."""
        ...

    async def save(self, session: DialogSession) -> DialogSession:
        """Insert a new session or update an in-progress one."""
        ...

    async def close(self, session: DialogSession) -> DialogSession:
        """Mark a session completed."""
        ...

    async def load_latest_closed(
        self, phone_number: str, organization_id: UUID
    ) -> DialogSession | None:
        """Get the most recently closed session, for redelivery checks only."""
        ...


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_domain(record: DialogSessionRecord) -> DialogSession:
    return DialogSession(
        id=record.id,
        phone_number=record.phone_number,
        organization_id=record.organization_id,
        status=DialogStatus(record.status),
        current_ordinal=record.current_ordinal,
        answers=dict(record.answers or {}),
        started_at=_aware(record.started_at),
        expires_at=_aware(record.expires_at),
        completed_at=_aware(record.completed_at),
        version=record.version,
        last_delivery_id=record.last_delivery_id,
        last_inbound_text=record.last_inbound_text,
        last_inbound_at=_aware(record.last_inbound_at),
        last_outbound_text=record.last_outbound_text,
    )


def _mutable_columns(session: DialogSession) -> dict[str, Any]:
    return {
        "status": session.status.value,
        "current_ordinal": session.current_ordinal,
        "answers": dict(session.answers),
        "expires_at": session.expires_at,
        "completed_at": session.completed_at,
        "last_delivery_id": session.last_delivery_id,
        "last_inbound_text": session.last_inbound_text,
        "last_inbound_at": session.last_inbound_at,
        "last_outbound_text": session.last_outbound_text,
    }


class SqlDialogSessionStore:
    """Dialog session store backed by the ``dialog_sessions`` table."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize store with database session.

        Args:
            session: Async database session; the caller owns the transaction.
        """
        self._session = session

    async def load(self, phone_number: str, organization_id: UUID) -> DialogSession | None:
        """Get the in-progress session for a respondent.

        Args:
            phone_number: Respondent number as sent by the gateway.
            organization_id: Organization owning the webhook.

        Returns:
            Session if one is in progress, None otherwise.
        """
        stmt = (
            select(DialogSessionRecord)
            .where(
                DialogSessionRecord.phone_number == phone_number,
                DialogSessionRecord.organization_id == organization_id,
                DialogSessionRecord.status == DialogStatus.IN_PROGRESS.value,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        record = result.scalar_one_or_none()
        return _to_domain(record) if record is not None else None

    async def load_latest_closed(
        self, phone_number: str, organization_id: UUID
    ) -> DialogSession | None:
        stmt = (
            select(DialogSessionRecord)
            .where(
                DialogSessionRecord.phone_number == phone_number,
                DialogSessionRecord.organization_id == organization_id,
                DialogSessionRecord.status == DialogStatus.COMPLETED.value,
            )
            .order_by(DialogSessionRecord.completed_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        record = result.scalars().first()
        return _to_domain(record) if record is not None else None

    async def save(self, session: DialogSession) -> DialogSession:
        """Persist a session's progress.

        Version 0 inserts; anything else updates the row only if it still
        carries the version the session was loaded with.

        Returns:
            The session with its new version.

        Raises:
            StaleSessionError: The row changed since it was loaded, or
                another in-progress session already exists.
        """
        if session.version == 0:
            return await self._insert(session)
        return await self._update(session)

    async def close(self, session: DialogSession) -> DialogSession:
        """Mark a session completed, under the same version check as ``save``.

        Raises:
            StaleSessionError: The row changed since it was loaded.
        """
        closed = replace(
            session,
            status=DialogStatus.COMPLETED,
            completed_at=session.completed_at or datetime.now(timezone.utc),
        )
        return await self._update(closed)

    async def _insert(self, session: DialogSession) -> DialogSession:
        values = {
            "id": session.id,
            "phone_number": session.phone_number,
            "organization_id": session.organization_id,
            "started_at": session.started_at,
            "version": 1,
            **_mutable_columns(session),
        }
        try:
            async with self._session.begin_nested():
                await self._session.execute(insert(DialogSessionRecord).values(**values))
        except IntegrityError as e:
            logger.warning(
                "Concurrent dialog session insert",
                extra={
                    "phone_number": session.phone_number,
                    "organization_id": str(session.organization_id),
                },
            )
            raise StaleSessionError(session.phone_number, 0) from e

        return replace(session, version=1)

    async def _update(self, session: DialogSession) -> DialogSession:
        expected = session.version
        stmt = (
            update(DialogSessionRecord)
            .where(
                DialogSessionRecord.id == session.id,
                DialogSessionRecord.version == expected,
            )
            .values(version=expected + 1, **_mutable_columns(session))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "Stale dialog session",
                extra={
                    "session_id": str(session.id),
                    "phone_number": session.phone_number,
                    "expected_version": expected,
                },
            )
            raise StaleSessionError(session.phone_number, expected)

        return replace(session, version=expected + 1)
