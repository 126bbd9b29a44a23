"""
API-key authentication for the batch API.

Keys are presented as ``Authorization: Bearer <key>`` and looked up by their
SHA-256 digest. Every request that reaches a handler is recorded in
``api_request_logs``.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.auth.models import ApiKey, ApiKeyStatus, ApiRequestLog
from feedback_engine.shared.database import get_db_session
from feedback_engine.shared.exceptions import InvalidApiKeyError, MissingCredentialsError
from feedback_engine.shared.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def hash_api_key(api_key: str) -> str:
    """Hex SHA-256 digest of a raw API key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ApiKeyContext:
    """Authenticated caller of the batch API."""

    api_key_id: UUID
    organization_id: UUID
    key_name: str


class ApiKeyService:
    """Resolves raw API keys to their organization."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def authenticate(self, api_key: str) -> ApiKeyContext:
        """Check a raw key and touch its ``last_used_at``.

        Args:
            api_key: Key exactly as presented by the caller.

        Returns:
            Context of the authenticated key.

        Raises:
            InvalidApiKeyError: Unknown, revoked or expired key.
        """
        if not api_key:
            raise InvalidApiKeyError()

        stmt = select(ApiKey).where(
            ApiKey.hashed_key == hash_api_key(api_key),
            ApiKey.status == ApiKeyStatus.ACTIVE.value,
        )
        result = await self._session.execute(stmt)
        key = result.scalar_one_or_none()
        if key is None:
            raise InvalidApiKeyError()

        now = datetime.now(timezone.utc)
        if key.expires_at is not None:
            expires_at = key.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= now:
                logger.info("Expired API key presented", extra={"api_key_id": str(key.id)})
                raise InvalidApiKeyError()

        await self._session.execute(
            update(ApiKey).where(ApiKey.id == key.id).values(last_used_at=now)
        )
        return ApiKeyContext(
            api_key_id=key.id,
            organization_id=key.organization_id,
            key_name=key.key_name,
        )


class ApiRequestLogRepository:
    """Writes the per-request audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        endpoint: str,
        status_code: int,
        *,
        api_key_id: UUID | None = None,
        organization_id: UUID | None = None,
        ip_address: str | None = None,
        error_message: str | None = None,
    ) -> ApiRequestLog:
        entry = ApiRequestLog(
            api_key_id=api_key_id,
            organization_id=organization_id,
            endpoint=endpoint,
            status_code=status_code,
            ip_address=ip_address,
            error_message=error_message,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry


def client_ip(request: Request) -> str | None:
    """Best-effort caller address, honouring a proxy's X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def require_api_key(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> ApiKeyContext:
    """FastAPI dependency authenticating the bearer API key.

    Raises:
        MissingCredentialsError: No bearer token in the request.
        InvalidApiKeyError: Token does not match an active key.
    """
    header = request.headers.get("authorization", "")
    if not header.startswith(BEARER_PREFIX):
        raise MissingCredentialsError()

    try:
        return await ApiKeyService(session).authenticate(header[len(BEARER_PREFIX):].strip())
    except InvalidApiKeyError:
        logger.warning(
            "Rejected API key",
            extra={"endpoint": request.url.path, "client_ip": client_ip(request)},
        )
        raise
