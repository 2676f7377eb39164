"""
Chat Service - Business logic for a streamed chat turn.

This service orchestrates the chat flow:
1. Normalizes the widget's messages into turns
2. Persists the new user turn (creating the session lazily)
3. Streams the answer from the LLM cascade
4. Lets the turn detector persist the answer once it is final

Routes stay thin: they only turn the returned ChatStream into an HTTP
response.
"""
import asyncio
from typing import Optional

from atheron.core.config import get_settings
from atheron.core.exceptions import SessionNotFoundError, ValidationError
from atheron.core.logging_config import get_logger
from atheron.core.validators import validate_session_id
from atheron.llm.client import LLMClient, get_llm_client
from atheron.memory.conversation import split_live_turn, to_llm_messages
from atheron.memory.registry import ActiveTurnRegistry, get_turn_registry
from atheron.memory.store import ConversationStore, get_conversation_store
from atheron.models.chat import AuthenticatedUser, ChatRequest
from atheron.services.messages import normalize_messages
from atheron.services.turn_writer import StoreTurnWriter
from atheron.streaming.detector import DetectorConfig, TurnCompletionDetector
from atheron.streaming.events import StreamComplete, StreamError, StreamEvent
from atheron.streaming.stream import ChatStream

logger = get_logger(__name__)


class ChatService:
    """
    Service for streamed chat with turn persistence.

    Anonymous callers get answers but nothing is stored for them.

    Example:
        >>> service = ChatService()
        >>> stream = await service.stream_chat(user, ChatRequest(messages=[...]))
        >>> async for chunk in stream:
        ...     send(chunk)
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        store: Optional[ConversationStore] = None,
        registry: Optional[ActiveTurnRegistry] = None,
        config: Optional[DetectorConfig] = None,
    ):
        """
        Initialize the chat service.

        Args:
            llm_client: Streaming LLM client (global singleton if omitted)
            store: Conversation store (global singleton if omitted)
            registry: Active turn registry (global singleton if omitted)
            config: Detector timings (from settings if omitted)
        """
        self.llm_client = llm_client or get_llm_client()
        self.store = store or get_conversation_store()
        self.registry = registry or get_turn_registry()
        self.config = config or DetectorConfig.from_settings(get_settings())
        logger.info("ChatService initialized")

    async def stream_chat(
        self,
        user: Optional[AuthenticatedUser],
        request: ChatRequest,
    ) -> ChatStream:
        """
        Start answering a chat request.

        The user turn is persisted before the provider is called, so the
        returned stream already knows its session id.

        Raises:
            EmptyConversationError: No usable messages
            ValidationError: Malformed session id
            SessionNotFoundError: Session missing or owned by someone else
            LLMError: No provider could start an answer
        """
        turns = normalize_messages(request.messages)

        is_valid, error = validate_session_id(request.session_id)
        if not is_valid:
            raise ValidationError(error, field="session_id")

        detector = await self._build_detector(user, request.session_id)

        history, live_turn = split_live_turn(turns)
        if live_turn is None:
            # Re-sent history only: nothing new to store
            detector.view_history(request.session_id, turns)
        else:
            detector.seed(history)
            await detector.observe_user_turn(live_turn.content)

        session_id = detector.session_id
        self.registry.register(detector)

        logger.info(
            f"Chat request: session={session_id}, turns={len(turns)}, "
            f"user={'anonymous' if user is None else user.user_id}"
        )

        stream = ChatStream(self.llm_client.stream(to_llm_messages(turns)), session_id=session_id)
        stream.subscribe(detector.handle)
        stream.subscribe(self._release_on_end(detector, session_id))

        try:
            await stream.open()
        except Exception:
            detector.close()
            self.registry.release(detector, session_id)
            raise

        return stream

    async def _build_detector(
        self,
        user: Optional[AuthenticatedUser],
        session_id: Optional[str],
    ) -> TurnCompletionDetector:
        if user is None:
            return TurnCompletionDetector(None, session_id=session_id, config=self.config)

        await asyncio.to_thread(
            self.store.ensure_user, user.user_id, user.email, user.name, user.avatar_url
        )
        if session_id:
            owned = await asyncio.to_thread(self.store.session_belongs, session_id, user.user_id)
            if not owned:
                raise SessionNotFoundError(session_id)

        writer = StoreTurnWriter(self.store, user.user_id)
        return TurnCompletionDetector(writer, session_id=session_id, config=self.config)

    def _release_on_end(self, detector: TurnCompletionDetector, session_id: Optional[str]):
        def on_event(event: StreamEvent) -> None:
            if isinstance(event, (StreamComplete, StreamError)):
                self.registry.release(detector, session_id)
        return on_event


# Module-level instance (singleton pattern)
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create the chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service


def reset_chat_service() -> None:
    """Drop the singleton (used by tests)."""
    global _chat_service
    _chat_service = None
