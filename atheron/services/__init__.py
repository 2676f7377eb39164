"""
Services module - Business logic and orchestration.

Services contain the core application logic:
- No HTTP concerns (those belong in api/)
- No database queries (those belong in memory/store.py)
- Orchestrate between LLM, storage and the turn detector
"""
from atheron.services.chat_service import ChatService, get_chat_service, reset_chat_service
from atheron.services.messages import extract_text, normalize_messages
from atheron.services.turn_writer import StoreTurnWriter

__all__ = [
    "ChatService",
    "get_chat_service",
    "reset_chat_service",
    "extract_text",
    "normalize_messages",
    "StoreTurnWriter",
]
