"""
Turn Completion Detector - Decide when a turn is final and persist it once.

One detector follows one conversation view through its turns:

    IDLE -> AWAITING_USER_ECHO -> USER_COMMITTED
         -> AWAITING_ASSISTANT_STABLE -> ASSISTANT_COMMITTED -> (next turn)

The user turn is written as soon as it is observed; the write returns the
session id (creating the session if needed) and every later write goes to
that id.

The assistant turn is final when the transport reports completion.
Observers without lifecycle events (no begin_assistant_turn call) treat
the text as final once nothing changed for a full quiescence window.
While a stream is open a quiet window only holds the text, so a provider
that pauses mid-answer never gets its prefix stored.

Writes for assistant turns are fire-and-forget: failures are logged by the
persistence side and the turn is dropped, the chat itself keeps working.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Set

from atheron.core.logging_config import get_logger
from atheron.memory.conversation import ConversationTurn, last_turn_text
from atheron.streaming.events import (
    StreamComplete,
    StreamDelta,
    StreamError,
    StreamEvent,
    StreamStart,
)
from atheron.streaming.sources import Source, extract_sources, strip_source_block

logger = get_logger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_USER_ECHO = "awaiting_user_echo"
    USER_COMMITTED = "user_committed"
    AWAITING_ASSISTANT_STABLE = "awaiting_assistant_stable"
    ASSISTANT_COMMITTED = "assistant_committed"


@dataclass(frozen=True)
class DetectorConfig:
    """
    Timing and gating for assistant turns.

    Attributes:
        quiescence_seconds: Quiet time after the last mutation before the
            text counts as final
        min_assistant_chars: Mutations not longer than this are ignored
        loading_placeholder: Text shown while waiting; never persisted
    """
    quiescence_seconds: float = 3.0
    min_assistant_chars: int = 50
    loading_placeholder: str = "Hold on"

    @classmethod
    def from_settings(cls, settings) -> "DetectorConfig":
        return cls(
            quiescence_seconds=settings.quiescence_seconds,
            min_assistant_chars=settings.min_assistant_chars,
            loading_placeholder=settings.loading_placeholder,
        )


class TurnPersistence(Protocol):
    """Where finished turns go. Implementations log their own failures."""

    async def persist_user_turn(self, session_id: Optional[str], text: str) -> Optional[str]:
        """Save a user turn; return the session id it was saved under."""
        ...

    async def persist_assistant_turn(
        self, session_id: str, text: str, sources: List[Source]
    ) -> None:
        ...


class TurnCompletionDetector:
    """
    Exactly-once persistence of user and assistant turns.

    Example:
        >>> detector = TurnCompletionDetector(writer)
        >>> await detector.observe_user_turn("What is a magnetar?")
        >>> stream.subscribe(detector.handle)
    """

    def __init__(
        self,
        persistence: Optional[TurnPersistence],
        session_id: Optional[str] = None,
        config: Optional[DetectorConfig] = None,
        readonly: bool = False,
    ):
        """
        Args:
            persistence: Collaborator that writes turns (None = never write)
            session_id: Session the view is attached to (None = not created yet)
            config: Quiescence window and gates
            readonly: True while the view only displays loaded history
        """
        self._persistence = persistence
        self._session_id = session_id
        self.config = config or DetectorConfig()
        self.readonly = readonly or persistence is None
        self.state = TurnState.IDLE

        self._last_saved_user = ""
        self._last_saved_assistant = ""
        self._pending_text = ""
        self._timer: Optional[asyncio.TimerHandle] = None
        self._streaming = False
        self._tasks: Set[asyncio.Task] = set()

    @property
    def session_id(self) -> Optional[str]:
        """Latest session id; always read through here, never cached by callers."""
        return self._session_id

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def seed(self, history: Sequence[ConversationTurn]) -> None:
        """
        Remember what is already persisted.

        A live turn whose text equals the last persisted one is not written
        again.
        """
        self._last_saved_user = last_turn_text(history, "user").strip()
        self._last_saved_assistant = last_turn_text(history, "assistant").strip()

    def view_history(self, session_id: str, history: Sequence[ConversationTurn]) -> None:
        """Switch to displaying a stored session; live observation stops."""
        self.reset(session_id)
        self.seed(history)
        self.readonly = True

    def reset(self, session_id: Optional[str] = None) -> None:
        """Forget the current turn (session switched or deleted)."""
        self._cancel_timer()
        self._session_id = session_id
        self._last_saved_user = ""
        self._last_saved_assistant = ""
        self._pending_text = ""
        self._streaming = False
        self.readonly = self._persistence is None
        self.state = TurnState.IDLE

    # ==================== USER TURNS ====================

    async def observe_user_turn(self, text: str) -> Optional[str]:
        """
        A user turn rendered.

        The write is awaited, so callers can rely on session_id being set
        (when persistence worked) before they dispatch the model request.

        Returns:
            The session id after the write
        """
        text = (text or "").strip()

        if self.readonly:
            logger.debug("Ignoring user turn while viewing history")
            return self._session_id

        if not text or text == self._last_saved_user:
            return self._session_id

        self._cancel_timer()
        self.state = TurnState.AWAITING_USER_ECHO
        self._last_saved_user = text
        self._last_saved_assistant = ""
        self._pending_text = ""

        session_id = await self._persistence.persist_user_turn(self._session_id, text)
        if session_id:
            if session_id != self._session_id:
                logger.info(f"Turns now attached to session {session_id}")
            self._session_id = session_id
        else:
            logger.warning("User turn was not persisted")

        self.state = TurnState.USER_COMMITTED
        return self._session_id

    # ==================== ASSISTANT TURNS ====================

    def begin_assistant_turn(self) -> None:
        """The model started answering."""
        if self.readonly:
            return
        self._cancel_timer()
        self._pending_text = ""
        self.state = TurnState.AWAITING_ASSISTANT_STABLE
        self._streaming = True

    def observe_assistant_text(self, text: str) -> None:
        """
        The assistant text changed.

        Every accepted mutation restarts the quiescence timer; only a full
        quiet window lets the timer fire.
        """
        if self.readonly or self.state == TurnState.ASSISTANT_COMMITTED:
            return

        text = (text or "").strip()
        if len(text) <= self.config.min_assistant_chars:
            return
        if self.config.loading_placeholder and self.config.loading_placeholder in text:
            return

        self.state = TurnState.AWAITING_ASSISTANT_STABLE
        self._pending_text = text
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.config.quiescence_seconds, self._on_quiescent)

    def complete(self, text: str) -> None:
        """The transport reported the end of the answer."""
        self._cancel_timer()
        self._streaming = False
        if self.readonly or self.state == TurnState.ASSISTANT_COMMITTED:
            return

        text = (text or "").strip()
        if not text or (self.config.loading_placeholder and text == self.config.loading_placeholder):
            return

        self._finalize(text)

    def fail(self, message: str) -> None:
        """The stream broke; whatever arrived is not an answer."""
        self._cancel_timer()
        self._streaming = False
        self._pending_text = ""
        if self.state != TurnState.ASSISTANT_COMMITTED:
            self.state = TurnState.IDLE
        logger.warning(f"Assistant turn dropped after stream error: {message}")

    def handle(self, event: StreamEvent) -> None:
        """Subscriber entry point for ChatStream events."""
        if isinstance(event, StreamStart):
            self.begin_assistant_turn()
        elif isinstance(event, StreamDelta):
            self.observe_assistant_text(event.buffer)
        elif isinstance(event, StreamComplete):
            self.complete(event.text)
        elif isinstance(event, StreamError):
            self.fail(event.message)

    def _on_quiescent(self) -> None:
        self._timer = None
        if self._streaming:
            logger.debug("Assistant text quiet but the stream is still open; waiting for completion")
            return
        if self._pending_text:
            logger.debug("Assistant text stable for a full window")
            self._finalize(self._pending_text)

    def _finalize(self, raw_text: str) -> None:
        if raw_text == self._last_saved_assistant:
            return

        self._last_saved_assistant = raw_text
        self._pending_text = ""
        self.state = TurnState.ASSISTANT_COMMITTED

        session_id = self._session_id
        if not session_id:
            logger.warning("No session for assistant turn; it will not be saved")
            return

        content = strip_source_block(raw_text)
        sources = extract_sources(raw_text).sources
        self._spawn(self._persistence.persist_assistant_turn(session_id, content, sources))

    # ==================== TASK BOOKKEEPING ====================

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background turn write failed: {task.exception()}")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def drain(self) -> None:
        """Wait for in-flight writes (tests, graceful shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Stop observing. A pending quiescence timer is dropped."""
        self._cancel_timer()
