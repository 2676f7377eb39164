"""
Route dependencies - Identity, services and rate limiting.

The auth provider sits in front of this API and forwards the verified
identity as X-User-* headers.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import Header

from atheron.core.exceptions import RateLimitExceeded, UnauthorizedError
from atheron.core.rate_limiter import get_rate_limiter
from atheron.memory.registry import ActiveTurnRegistry, get_turn_registry
from atheron.memory.store import ConversationStore, get_conversation_store
from atheron.models.chat import AuthenticatedUser
from atheron.services.chat_service import ChatService, get_chat_service


def get_optional_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_avatar: Optional[str] = Header(default=None),
) -> Optional[AuthenticatedUser]:
    """The caller's identity, or None for anonymous requests."""
    if not x_user_id or not x_user_id.strip():
        return None
    return AuthenticatedUser(
        user_id=x_user_id.strip(),
        email=x_user_email,
        name=x_user_name,
        avatar_url=x_user_avatar,
    )


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_avatar: Optional[str] = Header(default=None),
) -> AuthenticatedUser:
    """The caller's identity. Raises UnauthorizedError when there is none."""
    user = get_optional_user(x_user_id, x_user_email, x_user_name, x_user_avatar)
    if user is None:
        raise UnauthorizedError()
    return user


def get_store() -> ConversationStore:
    return get_conversation_store()


def get_registry() -> ActiveTurnRegistry:
    return get_turn_registry()


def get_chat() -> ChatService:
    return get_chat_service()


def enforce_rate_limit(identifier: str) -> Dict[str, str]:
    """
    Count one request for an identifier.

    Returns:
        X-RateLimit-* headers for the response

    Raises:
        RateLimitExceeded: If the identifier used up its window
    """
    rate_limiter = get_rate_limiter()
    is_allowed, remaining = rate_limiter.is_allowed(identifier)

    headers = {
        "X-RateLimit-Limit": str(rate_limiter.limit),
        "X-RateLimit-Remaining": str(remaining),
    }

    if not is_allowed:
        reset_time = rate_limiter.get_reset_time(identifier)
        retry_after = max(1, int((reset_time - datetime.utcnow()).total_seconds()))
        raise RateLimitExceeded(retry_after=retry_after)

    return headers
