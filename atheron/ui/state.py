"""
UI State - Session sidebar and chat view state for the Streamlit frontend.

State is immutable. It only changes through reduce(state, action), and
SessionStore keeps the latest state and tells subscribers about changes.

Example:
    >>> store = SessionStore()
    >>> store.dispatch(SetSessions(api.list_sessions()))
    >>> store.dispatch(SelectSession("0b5c..."))
    >>> store.state.active_session_id
    '0b5c...'
"""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from atheron.core.logging_config import get_logger
from atheron.streaming.sources import Source

logger = get_logger(__name__)


@dataclass(frozen=True)
class UIMessage:
    """A message as rendered in the chat view."""
    role: str
    content: str
    sources: Tuple[Source, ...] = ()
    loaded: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UIMessage":
        """Build a loaded message from a /messages API record."""
        return cls(
            role=data.get("role", "assistant"),
            content=data.get("content") or "",
            sources=tuple(Source.from_dict(s) for s in data.get("sources") or [] if isinstance(s, dict)),
            loaded=True,
        )

    def to_request(self) -> Dict[str, Any]:
        """Shape sent back to /api/chat."""
        return {"role": self.role, "content": self.content, "loaded": self.loaded}


@dataclass(frozen=True)
class ChatViewState:
    """
    Attributes:
        sessions: Sidebar entries (API session dicts), most recent first
        active_session_id: Session the chat view is attached to (None = new chat)
        showing_loaded_history: True while the view shows stored messages
        messages: Messages currently in the chat view
    """
    sessions: Tuple[Dict[str, Any], ...] = ()
    active_session_id: Optional[str] = None
    showing_loaded_history: bool = False
    messages: Tuple[UIMessage, ...] = ()

    def request_messages(self) -> List[Dict[str, Any]]:
        return [message.to_request() for message in self.messages]


# ==================== ACTIONS ====================

@dataclass(frozen=True)
class CreateSession:
    """A session was created for the conversation in view."""
    session: Dict[str, Any]


@dataclass(frozen=True)
class SelectSession:
    session_id: str


@dataclass(frozen=True)
class DeleteSession:
    session_id: str


@dataclass(frozen=True)
class SetSessions:
    sessions: Sequence[Dict[str, Any]]


@dataclass(frozen=True)
class NewChat:
    pass


@dataclass(frozen=True)
class AppendMessage:
    message: UIMessage


@dataclass(frozen=True)
class LoadMessages:
    """Stored messages for a session arrived."""
    session_id: str
    messages: Sequence[UIMessage] = field(default_factory=tuple)


Action = Union[CreateSession, SelectSession, DeleteSession, SetSessions, NewChat, AppendMessage, LoadMessages]


def _without(sessions: Sequence[Dict[str, Any]], session_id: str) -> Tuple[Dict[str, Any], ...]:
    return tuple(s for s in sessions if s.get("id") != session_id)


def reduce(state: ChatViewState, action: Action) -> ChatViewState:
    """Next state for an action. Unknown actions leave the state alone."""
    if isinstance(action, CreateSession):
        session_id = action.session.get("id")
        return replace(
            state,
            sessions=(action.session,) + _without(state.sessions, session_id),
            active_session_id=session_id,
        )

    if isinstance(action, SelectSession):
        if action.session_id == state.active_session_id:
            return state
        return replace(
            state,
            active_session_id=action.session_id,
            showing_loaded_history=False,
            messages=(),
        )

    if isinstance(action, DeleteSession):
        sessions = _without(state.sessions, action.session_id)
        if action.session_id != state.active_session_id:
            return replace(state, sessions=sessions)
        return ChatViewState(sessions=sessions)

    if isinstance(action, SetSessions):
        return replace(state, sessions=tuple(action.sessions))

    if isinstance(action, NewChat):
        return ChatViewState(sessions=state.sessions)

    if isinstance(action, AppendMessage):
        return replace(state, messages=state.messages + (action.message,))

    if isinstance(action, LoadMessages):
        if action.session_id != state.active_session_id:
            # Arrived after the user moved on
            return state
        messages = tuple(action.messages)
        return replace(state, messages=messages, showing_loaded_history=bool(messages))

    logger.warning(f"Unknown UI action: {action!r}")
    return state


def filter_sessions(sessions: Sequence[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Sidebar search: case-insensitive match on the title."""
    query = (query or "").strip().lower()
    if not query:
        return list(sessions)
    return [s for s in sessions if query in (s.get("title") or "").lower()]


StateSubscriber = Callable[[ChatViewState, Action], None]


class SessionStore:
    """Holds the current ChatViewState and notifies subscribers on change."""

    def __init__(self, state: Optional[ChatViewState] = None):
        self._state = state or ChatViewState()
        self._subscribers: List[StateSubscriber] = []

    @property
    def state(self) -> ChatViewState:
        return self._state

    def dispatch(self, action: Action) -> ChatViewState:
        new_state = reduce(self._state, action)
        if new_state is not self._state:
            self._state = new_state
            for subscriber in list(self._subscribers):
                subscriber(new_state, action)
        return self._state

    def subscribe(self, subscriber: StateSubscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe
