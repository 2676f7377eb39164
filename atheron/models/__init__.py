"""
Models module - Pydantic schemas for data validation.

This module defines:
- Request models: Input validation for API endpoints
- Response models: Output formatting for API responses
"""
from atheron.models.chat import (
    AuthenticatedUser,
    ChatRequest,
    SessionCreateRequest,
    MessageCreateRequest,
    SourceModel,
    SessionResponse,
    MessageResponse,
    DeleteResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    "AuthenticatedUser",
    "ChatRequest",
    "SessionCreateRequest",
    "MessageCreateRequest",
    "SourceModel",
    "SessionResponse",
    "MessageResponse",
    "DeleteResponse",
    "HealthResponse",
    "ErrorResponse",
]
