"""
Custom Exceptions - Application-specific error classes.

This module defines a hierarchy of exceptions for clean error handling:
- Each exception has a status code and error code
- Used by the API layer for consistent error responses
- No stack traces leaked in production
"""
from typing import Optional


class AtheronException(Exception):
    """
    Base exception for all Atheron errors.

    Subclass this for specific error types.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class RateLimitExceeded(AtheronException):
    """Raised when a user exceeds the rate limit."""
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message=f"Rate limit exceeded. Please wait {retry_after} seconds.",
            details=f"retry_after={retry_after}"
        )
        self.retry_after = retry_after


class ValidationError(AtheronException):
    """Raised when input validation fails."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field


class EmptyConversationError(AtheronException):
    """Raised when a chat request carries no usable text at all."""
    status_code = 400
    error_code = "No messages"

    def __init__(self):
        super().__init__("No messages")

    def to_dict(self) -> dict:
        # Clients only look at the "error" key for this one
        return {"error": self.error_code}


class UnauthorizedError(AtheronException):
    """Raised when a storage-facing call has no authenticated user."""
    status_code = 401
    error_code = "Unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code}


class DatabaseError(AtheronException):
    """Raised when database operations fail."""
    status_code = 503
    error_code = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class LLMError(AtheronException):
    """Raised when every configured LLM provider fails."""
    status_code = 503
    error_code = "llm_error"

    def __init__(self, message: str = "LLM service unavailable"):
        super().__init__(message)


class SessionNotFoundError(AtheronException):
    """Raised when a session does not exist or belongs to someone else."""
    status_code = 404
    error_code = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session not found: {session_id[:8]}...",
            details=f"session_id={session_id}"
        )
        self.session_id = session_id
