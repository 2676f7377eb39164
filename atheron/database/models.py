"""
Database Models - SQLAlchemy ORM models for conversation history.

Tables:
- users         : people known to the auth provider
- chat_sessions : named conversations owned by a user
- messages      : turns of a session, oldest first
"""
import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

DEFAULT_SESSION_TITLE = "New Chat"


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime) -> str:
    return value.isoformat() if value else None


class User(Base):
    """A user as seen by the auth provider (external_id is its user id)."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(320), nullable=True)
    name = Column(String(255), nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship(
        "ChatSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "created_at": _iso(self.created_at),
        }


class ChatSession(Base):
    """
    A conversation thread.

    The title comes from the first user message and is set once;
    updated_at moves on every saved message so the sidebar can sort by it.
    """
    __tablename__ = "chat_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), default=DEFAULT_SESSION_TITLE, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ChatMessage(Base):
    """
    One persisted turn.

    content never carries the source payload delimiters; parsed sources
    of assistant turns live in extra_data["sources"].
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    extra_data = Column(JSON, nullable=True)

    session = relationship("ChatSession", back_populates="messages")

    def to_dict(self) -> Dict[str, Any]:
        extra = self.extra_data or {}
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role,
            "content": self.content,
            "created_at": _iso(self.created_at),
            "sources": extra.get("sources", []),
        }
