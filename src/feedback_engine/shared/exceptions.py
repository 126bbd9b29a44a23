"""
Custom exceptions for the application.

Answer validation failures are not exceptions: they travel as
``ValidationOutcome`` values. What remains here are authentication,
persistence and concurrency failures.
"""

from uuid import UUID


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Authentication errors
class AuthenticationError(AppError):
    """Base authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class MissingCredentialsError(AuthenticationError):
    """Authorization header absent or not a bearer token."""

    def __init__(self, message: str = "Missing or invalid Authorization header") -> None:
        super().__init__(message)
        self.code = "MISSING_CREDENTIALS"


class InvalidApiKeyError(AuthenticationError):
    """API key unknown, revoked or expired."""

    def __init__(self, message: str = "Invalid API Key") -> None:
        super().__init__(message)
        self.code = "INVALID_API_KEY"


# Lookup errors
class OrganizationNotFoundError(AppError):
    """No organization matches the webhook secret."""

    def __init__(self, message: str = "Unknown webhook") -> None:
        super().__init__(message, "ORGANIZATION_NOT_FOUND")


# Persistence errors
class PersistenceError(AppError):
    """Storage failure while writing feedback records.

    ``session_id`` is set when the FeedbackSession row was already written
    before the failure, so the caller knows a blind retry may duplicate it.
    """

    def __init__(self, message: str, session_id: UUID | None = None) -> None:
        super().__init__(message, "PERSISTENCE_ERROR")
        self.session_id = session_id


# Concurrency errors
class StaleSessionError(AppError):
    """Dialog session row changed since it was loaded."""

    def __init__(self, phone_number: str, expected_version: int) -> None:
        super().__init__(
            f"Dialog session for {phone_number} changed (expected version {expected_version})",
            "STALE_SESSION",
        )
        self.phone_number = phone_number
        self.expected_version = expected_version


class TurnConflictError(AppError):
    """A dialog turn kept losing the optimistic-concurrency race."""

    def __init__(self, phone_number: str, attempts: int) -> None:
        super().__init__(
            f"Dialog turn for {phone_number} conflicted {attempts} times",
            "TURN_CONFLICT",
        )
        self.phone_number = phone_number
        self.attempts = attempts
