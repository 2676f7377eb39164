"""
Conversation Turns - Data structures for chat history.

A turn is one user message or one assistant message. Turns that came
from persisted history are flagged as loaded: they are sent back to the
model for context but are never written again.
"""
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Sequence, Tuple


Role = Literal["user", "assistant"]


@dataclass
class ConversationTurn:
    """
    Represents a single turn in a conversation.

    Attributes:
        role: Who produced the turn (user or assistant)
        content: Plain text of the turn
        loaded: True if the turn was loaded from persisted history

    Example:
        >>> turn = ConversationTurn(role="user", content="What is a pulsar?")
        >>> turn.to_llm_message()
        {'role': 'user', 'content': 'What is a pulsar?'}
    """
    role: Role
    content: str
    loaded: bool = False

    def to_llm_message(self) -> Dict[str, str]:
        """Convert to dict format for LLM APIs (role + content only)."""
        return {"role": self.role, "content": self.content}


def to_llm_messages(turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
    """Format turns for a provider request."""
    return [turn.to_llm_message() for turn in turns]


def last_turn_text(turns: Sequence[ConversationTurn], role: Role) -> str:
    """Text of the most recent turn with the given role, or ''."""
    for turn in reversed(turns):
        if turn.role == role:
            return turn.content
    return ""


def split_live_turn(
    turns: Sequence[ConversationTurn]
) -> Tuple[List[ConversationTurn], Optional[ConversationTurn]]:
    """
    Separate history from the live user turn.

    Only a trailing user turn that was not loaded from storage is live.
    Everything before it is history.

    Returns:
        Tuple of (history, live_turn or None)
    """
    if turns and turns[-1].role == "user" and not turns[-1].loaded:
        return list(turns[:-1]), turns[-1]
    return list(turns), None
