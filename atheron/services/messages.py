"""
Message normalization - Turn chat widget payloads into conversation turns.

Widgets send messages in several shapes:
- {"role": "user", "content": "text"}
- {"role": "user", "content": [{"type": "text", "text": "..."}]}
- {"role": "user", "parts": [{"type": "text", "text": "..."}]}
Only the text parts matter here.
"""
from typing import Any, Dict, Iterable, List

from atheron.core.exceptions import EmptyConversationError
from atheron.core.logging_config import get_logger
from atheron.core.validators import VALID_ROLES
from atheron.memory.conversation import ConversationTurn

logger = get_logger(__name__)


def _join_text_parts(parts: Iterable[Any]) -> str:
    return "".join(
        str(part.get("text") or "")
        for part in parts
        if isinstance(part, dict) and part.get("type") == "text"
    )


def extract_text(message: Dict[str, Any]) -> str:
    """
    Plain text of one widget message.

    String content wins; then a parts list; then a content list.
    Anything else has no text.
    """
    content = message.get("content")
    if isinstance(content, str):
        return content

    parts = message.get("parts")
    if isinstance(parts, list):
        return _join_text_parts(parts)

    if isinstance(content, list):
        return _join_text_parts(content)

    return ""


def normalize_messages(raw_messages: List[Any]) -> List[ConversationTurn]:
    """
    Keep the user and assistant turns that carry text.

    Raises:
        EmptyConversationError: If nothing usable is left
    """
    turns = []
    for message in raw_messages or []:
        if not isinstance(message, dict):
            continue
        role = message.get("role")
        if role not in VALID_ROLES:
            continue
        text = extract_text(message)
        if not text.strip():
            continue
        turns.append(ConversationTurn(role=role, content=text, loaded=bool(message.get("loaded"))))

    if not turns:
        raise EmptyConversationError()

    skipped = len(raw_messages) - len(turns)
    if skipped:
        logger.debug(f"Dropped {skipped} message(s) without usable text")
    return turns
