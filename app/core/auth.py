"""API key authentication logic.

Credentials are issued elsewhere; this service only maps configured API keys
to user ids. Keys come from a comma-separated environment variable where each
entry is ``user_id:key`` or a bare ``key``.

Design principles:
- Single Responsibility: Only handles API key validation
- Dependency Injection: Used via FastAPI Depends() for loose coupling
- Configuration-driven: Keys managed via env vars, not hardcoded
- Testable: Pure function logic with minimal dependencies
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

ANONYMOUS_USER_ID = "anonymous"


def hash_identifier(value: str) -> str:
    """Short SHA-256 digest used to log or key identifiers without exposing them."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def parse_api_keys(keys_string: str | None) -> dict[str, str]:
    """Parse comma-separated API key entries into a key -> user id mapping.

    Args:
        keys_string: Comma-separated ``user_id:key`` or bare ``key`` entries.

    Returns:
        Dict mapping each trimmed key to its user id. Bare keys map to
        ``key-<hash>`` so the user id never reveals the key.

    Examples:
        >>> parse_api_keys("alice:k1, bob:k2")
        {'k1': 'alice', 'k2': 'bob'}
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    keys: dict[str, str] = {}
    for entry in keys_string.split(","):
        entry = entry.strip()
        if not entry:
            continue
        user_id, sep, key = entry.partition(":")
        if sep and user_id.strip() and key.strip():
            keys[key.strip()] = user_id.strip()
        else:
            keys[entry] = f"key-{hash_identifier(entry)}"
    return keys


def validate_api_key(provided_key: str) -> str:
    """Validate that provided API key matches configured keys.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: API key to validate.

    Returns:
        The user id bound to the key (``anonymous`` when auth is disabled).

    Raises:
        AuthenticationAppError: If key is invalid or authentication is required but no keys configured.
    """
    if not settings.app.api_key_required:
        # Authentication disabled - allow all requests
        return ANONYMOUS_USER_ID

    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={
                "reason": "api_keys_not_configured",
                "auth_required": settings.app.api_key_required,
            },
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    user_id = valid_keys.get(provided_key)
    if user_id is None:
        logger.warning(
            "api_key_validation_failed",
            extra={
                "reason": "invalid_api_key",
                "api_key_hash": hash_identifier(provided_key),
                "auth_required": settings.app.api_key_required,
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )
    return user_id


async def require_user(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency resolving the caller's user id from X-API-Key.

    Usage:
        @router.post("/protected")
        async def protected_endpoint(user_id: Annotated[str, Depends(require_user)]):
            ...

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.api_key_required:
        logger.debug(
            "auth.skipped",
            extra={"reason": "auth_required_false"},
        )
        return ANONYMOUS_USER_ID

    if not x_api_key:
        logger.warning(
            "auth.missing_key",
            extra={
                "auth_required": True,
                "api_key_present": False,
            },
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        user_id = validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.info(
        "auth.success",
        extra={
            "auth_required": True,
            "api_key_present": True,
            "api_key_hash": hash_identifier(x_api_key),
        },
    )
    return user_id
