"""
Turn Writer - Persists finished turns for the detector.

The store is synchronous SQLAlchemy, so every call runs in a worker
thread. Failures are logged and swallowed: a chat keeps streaming even
when history can't be saved.
"""
import asyncio
from typing import List, Optional

from atheron.core.exceptions import AtheronException, UnauthorizedError
from atheron.core.logging_config import get_logger
from atheron.memory.store import ConversationStore, generate_title
from atheron.streaming.sources import Source

logger = get_logger(__name__)


class StoreTurnWriter:
    """
    TurnPersistence backed by the ConversationStore, scoped to one user.

    Raises:
        UnauthorizedError: At construction when there is no user
    """

    def __init__(self, store: ConversationStore, user_id: Optional[str]):
        if not user_id:
            raise UnauthorizedError()
        self.store = store
        self.user_id = user_id

    async def persist_user_turn(self, session_id: Optional[str], text: str) -> Optional[str]:
        try:
            if not session_id:
                session = await asyncio.to_thread(
                    self.store.create_session,
                    self.user_id,
                    generate_title(text, self.store.title_max_length),
                )
                session_id = session["id"]
            await asyncio.to_thread(
                self.store.save_message, session_id, "user", text, None, self.user_id
            )
            return session_id
        except AtheronException as e:
            logger.error(f"Failed to save user turn (session={session_id}): {e.message}")
            return None

    async def persist_assistant_turn(self, session_id: str, text: str, sources: List[Source]) -> None:
        try:
            await asyncio.to_thread(
                self.store.save_message, session_id, "assistant", text, sources, self.user_id
            )
            logger.info(f"Saved assistant turn: session={session_id}, sources={len(sources)}")
        except AtheronException as e:
            logger.error(f"Failed to save assistant turn (session={session_id}): {e.message}")
