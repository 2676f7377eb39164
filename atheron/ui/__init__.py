"""
UI module - Frontend-side state and backend access for streamlit_app.py.
"""
from atheron.ui.api_client import APIClientError, AtheronClient, ChatReply
from atheron.ui.state import (
    AppendMessage,
    ChatViewState,
    CreateSession,
    DeleteSession,
    LoadMessages,
    NewChat,
    SelectSession,
    SessionStore,
    SetSessions,
    UIMessage,
    filter_sessions,
    reduce,
)

__all__ = [
    "APIClientError",
    "AtheronClient",
    "ChatReply",
    "AppendMessage",
    "ChatViewState",
    "CreateSession",
    "DeleteSession",
    "LoadMessages",
    "NewChat",
    "SelectSession",
    "SessionStore",
    "SetSessions",
    "UIMessage",
    "filter_sessions",
    "reduce",
]
