"""
Memory Package - Conversation history.

- conversation.py : ConversationTurn and helpers for turn lists
- store.py        : ConversationStore, the SQLAlchemy-backed history
- registry.py     : ActiveTurnRegistry, detectors with turns in flight

Example:
    >>> from atheron.memory import get_conversation_store
    >>> store = get_conversation_store()
    >>> session = store.create_session("user_2abc")
"""
# conversation must be imported first: the streaming package depends on it
from atheron.memory.conversation import (
    ConversationTurn,
    last_turn_text,
    split_live_turn,
    to_llm_messages,
)
from atheron.memory.store import (
    ConversationStore,
    generate_title,
    get_conversation_store,
    reset_conversation_store,
)
from atheron.memory.registry import (
    ActiveTurnRegistry,
    get_turn_registry,
    reset_turn_registry,
)

__all__ = [
    "ConversationTurn",
    "last_turn_text",
    "split_live_turn",
    "to_llm_messages",
    "ConversationStore",
    "generate_title",
    "get_conversation_store",
    "reset_conversation_store",
    "ActiveTurnRegistry",
    "get_turn_registry",
    "reset_turn_registry",
]
