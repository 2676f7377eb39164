"""
Session Routes - Chat history CRUD for the sidebar.

Endpoints:
- GET    /api/sessions                 : List the caller's sessions
- POST   /api/sessions                 : Create a session
- DELETE /api/sessions?id=...          : Delete a session
- DELETE /api/sessions/{id}            : Delete a session
- GET    /api/sessions/{id}/messages   : Messages of a session
- POST   /api/sessions/{id}/messages   : Append a message

Every endpoint needs an authenticated user. Handlers are plain functions
so FastAPI runs the blocking store calls in its threadpool.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from atheron.api.deps import get_current_user, get_registry, get_store
from atheron.core.exceptions import SessionNotFoundError, ValidationError
from atheron.core.logging_config import get_logger
from atheron.memory.registry import ActiveTurnRegistry
from atheron.memory.store import ConversationStore
from atheron.models.chat import (
    AuthenticatedUser,
    DeleteResponse,
    ErrorResponse,
    MessageCreateRequest,
    MessageResponse,
    SessionCreateRequest,
    SessionResponse,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/sessions",
    tags=["Sessions"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        503: {"model": ErrorResponse, "description": "Database unavailable"},
    }
)


@router.get("", response_model=List[SessionResponse], summary="List sessions")
def list_sessions(
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
):
    """The caller's sessions, most recently updated first."""
    store.ensure_user(user.user_id, user.email, user.name, user.avatar_url)
    return store.list_sessions(user.user_id)


@router.post("", response_model=SessionResponse, summary="Create a session")
def create_session(
    body: Optional[SessionCreateRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
):
    """Create an empty session. The title defaults to "New Chat"."""
    store.ensure_user(user.user_id, user.email, user.name, user.avatar_url)
    return store.create_session(user.user_id, body.title if body else None)


def _delete(session_id: str, user: AuthenticatedUser, store: ConversationStore, registry: ActiveTurnRegistry):
    if not store.delete_session(session_id, user.user_id):
        raise SessionNotFoundError(session_id)
    registry.invalidate(session_id)
    logger.info(f"Session deleted by {user.user_id}: {session_id}")
    return DeleteResponse(success=True)


@router.delete(
    "",
    response_model=DeleteResponse,
    summary="Delete a session (query parameter)",
    responses={400: {"model": ErrorResponse, "description": "Session ID required"}},
)
def delete_session_by_query(
    id: Optional[str] = Query(default=None, description="Session ID"),
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
    registry: ActiveTurnRegistry = Depends(get_registry),
):
    if not id:
        raise ValidationError("Session ID required", field="id")
    return _delete(id, user, store, registry)


@router.delete(
    "/{session_id}",
    response_model=DeleteResponse,
    summary="Delete a session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
def delete_session(
    session_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
    registry: ActiveTurnRegistry = Depends(get_registry),
):
    """Delete a session with its messages. In-flight answers stop saving to it."""
    return _delete(session_id, user, store, registry)


@router.get(
    "/{session_id}/messages",
    response_model=List[MessageResponse],
    summary="Messages of a session",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
def get_messages(
    session_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
):
    return store.get_messages(session_id, user.user_id)


@router.post(
    "/{session_id}/messages",
    response_model=MessageResponse,
    summary="Append a message",
    responses={
        400: {"model": ErrorResponse, "description": "Role and content required"},
        404: {"model": ErrorResponse, "description": "Session not found"},
    },
)
def create_message(
    session_id: str,
    body: MessageCreateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: ConversationStore = Depends(get_store),
):
    """
    Append a message. The first user message names the session; any
    source payload in the content is dropped.
    """
    if not body.role or not body.content:
        raise ValidationError("Role and content required")
    return store.save_message(session_id, body.role, body.content, user_id=user.user_id)
