"""
Conversation Store - Database-backed users, sessions and messages.

Every public method opens its own database session, so the store can be
called from worker threads (the chat path runs it via asyncio.to_thread).
Rows are converted to dicts before the session closes.

User ids passed to the store are the auth provider's ids (the value of
the X-User-Id header).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atheron.core.config import get_settings
from atheron.core.exceptions import (
    DatabaseError,
    SessionNotFoundError,
    ValidationError,
)
from atheron.core.logging_config import get_logger
from atheron.core.validators import validate_content, validate_role
from atheron.database.connection import DatabaseConnection, get_database
from atheron.database.models import (
    DEFAULT_SESSION_TITLE,
    ChatMessage,
    ChatSession,
    User,
)
from atheron.streaming.sources import Source, strip_source_block

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 50
TITLE_ELLIPSIS = "..."


def generate_title(first_message: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """
    Session title from the first user message.

    Example:
        >>> generate_title("Explain dark matter")
        'Explain dark matter'
    """
    text = (first_message or "").strip()
    if not text:
        return DEFAULT_SESSION_TITLE
    if len(text) > max_length:
        return text[:max_length] + TITLE_ELLIPSIS
    return text


class ConversationStore:
    """
    Persistence for chat history.

    Ownership is enforced whenever a user id is supplied: a session owned
    by someone else behaves exactly like a missing one.

    Example:
        >>> store = ConversationStore()
        >>> session = store.create_session("user_2abc")
        >>> store.save_message(session["id"], "user", "What is a magnetar?")
    """

    def __init__(self, db: Optional[DatabaseConnection] = None, title_max_length: int = TITLE_MAX_LENGTH):
        self.db = db or get_database()
        self.title_max_length = title_max_length
        logger.info("ConversationStore initialized")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def ensure_user(
        self,
        external_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get the user for an auth id, creating it on first sight.

        Profile fields are only filled in when the row is created.
        """
        try:
            with self.db.get_session() as db_session:
                user = self._find_user(db_session, external_id)
                if user is None:
                    user = User(
                        external_id=external_id,
                        email=email,
                        name=name,
                        avatar_url=avatar_url,
                    )
                    db_session.add(user)
                    db_session.flush()
                    logger.info(f"[STORE] Created user: {external_id}")
                return user.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"[STORE] ensure_user failed: {e}")
            raise DatabaseError("Failed to load user") from e

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, title: Optional[str] = None) -> Dict[str, Any]:
        """Create an empty session for a user."""
        try:
            with self.db.get_session() as db_session:
                user = self._get_or_create_user(db_session, user_id)
                now = datetime.utcnow()
                chat_session = ChatSession(
                    user_id=user.id,
                    title=(title or "").strip() or DEFAULT_SESSION_TITLE,
                    created_at=now,
                    updated_at=now,
                )
                db_session.add(chat_session)
                db_session.flush()
                logger.info(f"[STORE] Created session: {chat_session.id} (user={user_id})")
                return chat_session.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"[STORE] create_session failed: {e}")
            raise DatabaseError("Failed to create session") from e

    def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        """All sessions of a user, most recently updated first."""
        try:
            with self.db.get_session() as db_session:
                rows = (
                    db_session.query(ChatSession)
                    .join(User, ChatSession.user_id == User.id)
                    .filter(User.external_id == user_id)
                    .order_by(ChatSession.updated_at.desc())
                    .all()
                )
                return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"[STORE] list_sessions failed: {e}")
            raise DatabaseError("Failed to fetch sessions") from e

    def session_belongs(self, session_id: str, user_id: str) -> bool:
        try:
            with self.db.get_session() as db_session:
                return self._owned_session(db_session, session_id, user_id) is not None
        except SQLAlchemyError as e:
            logger.error(f"[STORE] session_belongs failed: {e}")
            raise DatabaseError("Failed to load session") from e

    def delete_session(self, session_id: str, user_id: str) -> bool:
        """
        Delete a session and (by cascade) its messages.

        Returns:
            True if a session was deleted, False if none matched
        """
        try:
            with self.db.get_session() as db_session:
                chat_session = self._owned_session(db_session, session_id, user_id)
                if chat_session is None:
                    logger.debug(f"[STORE] Nothing to delete: {session_id}")
                    return False
                db_session.delete(chat_session)
                logger.info(f"[STORE] Deleted session: {session_id}")
                return True
        except SQLAlchemyError as e:
            logger.error(f"[STORE] delete_session failed: {e}")
            raise DatabaseError("Failed to delete session") from e

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def get_messages(self, session_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Messages of a session, oldest first.

        Raises:
            SessionNotFoundError: If the session is missing or not owned
        """
        try:
            with self.db.get_session() as db_session:
                self._require_session(db_session, session_id, user_id)
                rows = (
                    db_session.query(ChatMessage)
                    .filter(ChatMessage.session_id == session_id)
                    .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
                    .all()
                )
                return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"[STORE] get_messages failed: {e}")
            raise DatabaseError("Failed to fetch messages") from e

    def save_message(
        self,
        session_id: str,
        role: str,
        content: str,
        sources: Optional[List[Source]] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Append one message to a session.

        The source payload never reaches the content column; assistant
        sources are kept in extra_data instead. The session title is set
        from the first user message only, and updated_at always moves.

        Raises:
            ValidationError: Bad role or empty content
            SessionNotFoundError: Session missing or not owned by user_id
        """
        is_valid, error = validate_role(role)
        if not is_valid:
            raise ValidationError(error, field="role")

        is_valid, content, error = validate_content(strip_source_block(content or ""))
        if not is_valid:
            raise ValidationError(error, field="content")

        extra_data = None
        if sources:
            extra_data = {"sources": [source.to_dict() for source in sources]}

        try:
            with self.db.get_session() as db_session:
                chat_session = self._require_session(db_session, session_id, user_id)

                if role == "user" and not self._has_user_message(db_session, session_id):
                    chat_session.title = generate_title(content, self.title_max_length)

                now = datetime.utcnow()
                message = ChatMessage(
                    session_id=session_id,
                    role=role,
                    content=content,
                    created_at=now,
                    extra_data=extra_data,
                )
                db_session.add(message)
                chat_session.updated_at = now
                db_session.flush()

                logger.debug(f"[STORE] Saved message: session={session_id}, role={role}, chars={len(content)}")
                return message.to_dict()
        except SQLAlchemyError as e:
            logger.error(f"[STORE] save_message failed: {e}")
            raise DatabaseError("Failed to save message") from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find_user(db_session: Session, external_id: str) -> Optional[User]:
        return db_session.query(User).filter(User.external_id == external_id).first()

    def _get_or_create_user(self, db_session: Session, external_id: str) -> User:
        user = self._find_user(db_session, external_id)
        if user is None:
            user = User(external_id=external_id)
            db_session.add(user)
            db_session.flush()
        return user

    @staticmethod
    def _owned_session(db_session: Session, session_id: str, user_id: Optional[str]) -> Optional[ChatSession]:
        query = db_session.query(ChatSession).filter(ChatSession.id == session_id)
        if user_id is not None:
            query = query.join(User, ChatSession.user_id == User.id).filter(User.external_id == user_id)
        return query.first()

    def _require_session(self, db_session: Session, session_id: str, user_id: Optional[str]) -> ChatSession:
        chat_session = self._owned_session(db_session, session_id, user_id)
        if chat_session is None:
            raise SessionNotFoundError(session_id)
        return chat_session

    @staticmethod
    def _has_user_message(db_session: Session, session_id: str) -> bool:
        return db_session.query(ChatMessage.id).filter(
            ChatMessage.session_id == session_id,
            ChatMessage.role == "user",
        ).first() is not None


# Module-level instance (singleton pattern)
_store: Optional[ConversationStore] = None


def get_conversation_store() -> ConversationStore:
    """Get or create the conversation store instance."""
    global _store
    if _store is None:
        _store = ConversationStore(title_max_length=get_settings().title_max_length)
    return _store


def reset_conversation_store() -> None:
    """Drop the singleton (used by tests)."""
    global _store
    _store = None
