"""
Input Validators - Sanitization and validation utilities.

Chat content is markdown and LaTeX, so whitespace is preserved; only
control characters that break storage are removed.
"""
import uuid
from typing import Optional, Tuple

from atheron.core.logging_config import get_logger

logger = get_logger(__name__)

VALID_ROLES = ("user", "assistant")

# Long assistant answers with tables and formulas fit well under this
MAX_CONTENT_LENGTH = 50_000


def sanitize_content(content: str) -> str:
    """
    Sanitize message content for storage.

    - Removes null bytes (rejected by Postgres text columns)
    - Strips leading/trailing whitespace
    """
    if not content:
        return ""
    return content.replace("\x00", "").strip()


def validate_session_id(session_id: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate a session ID is a proper UUID.

    Args:
        session_id: Session ID to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not session_id:
        return True, None  # Empty is OK (created lazily)

    try:
        uuid.UUID(session_id)
        return True, None
    except ValueError:
        return False, "Invalid session_id format (must be UUID)"


def validate_role(role: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Check that a role is one we persist."""
    if role not in VALID_ROLES:
        return False, f"Invalid role: {role}. Must be one of: {', '.join(VALID_ROLES)}"
    return True, None


def validate_content(content: Optional[str]) -> Tuple[bool, str, Optional[str]]:
    """
    Full validation and sanitization of message content.

    Returns:
        Tuple of (is_valid, sanitized_content, error_message)
    """
    sanitized = sanitize_content(content or "")

    if not sanitized:
        return False, "", "Content cannot be empty"

    if len(sanitized) > MAX_CONTENT_LENGTH:
        logger.warning(f"Rejected oversized content: {len(sanitized)} chars")
        return False, "", f"Content too long (max {MAX_CONTENT_LENGTH} characters)"

    return True, sanitized, None
