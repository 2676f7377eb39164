"""
Request and Response models for the Atheron API.

These Pydantic models define the contract between client and server.
They provide:
- Type validation
- Automatic documentation
- Request/response serialization
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """Identity forwarded by the auth provider in X-User-* headers."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class ChatRequest(BaseModel):
    """
    Request model for the /api/chat endpoint.

    Attributes:
        messages: Conversation so far, in the chat widget's own format.
            Each item has a role and either string content, a content
            list or a parts list. History items may carry loaded=true.
        session_id: Session the conversation belongs to (None = new chat)
    """
    messages: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Ordered conversation turns",
        examples=[[{"role": "user", "content": "How far is Voyager 1?"}]]
    )
    session_id: Optional[str] = Field(
        default=None,
        description="Session ID; omitted for a new chat"
    )


class SessionCreateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)


class MessageCreateRequest(BaseModel):
    """Body of POST /api/sessions/{id}/messages. Both fields are required."""
    role: Optional[str] = None
    content: Optional[str] = None


class SourceModel(BaseModel):
    domain: str = ""
    title: str = ""
    url: str = ""
    description: str = ""


class SessionResponse(BaseModel):
    """A chat session as listed in the sidebar."""
    id: str
    user_id: str
    title: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageResponse(BaseModel):
    """A persisted message."""
    id: int
    session_id: str
    role: str
    content: str
    created_at: Optional[str] = None
    sources: List[SourceModel] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Response model for the /health endpoint."""
    status: str = Field(default="healthy")
    version: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    message: Optional[str] = None
    details: Optional[str] = None
