"""
API-key authentication and request auditing.
"""

from feedback_engine.auth.api_keys import (
    ApiKeyContext,
    ApiKeyService,
    ApiRequestLogRepository,
    hash_api_key,
    require_api_key,
)

__all__ = [
    "ApiKeyContext",
    "ApiKeyService",
    "ApiRequestLogRepository",
    "hash_api_key",
    "require_api_key",
]
