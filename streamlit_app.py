"""
Atheron - Streamlit Frontend

Chat interface for Athey, the space and STEM assistant.
Connects to the FastAPI backend for answers and chat history.

Run with: streamlit run streamlit_app.py
"""
import os
from typing import Optional

import streamlit as st

from atheron.streaming.sources import extract_sources
from atheron.ui.api_client import APIClientError, AtheronClient
from atheron.ui.state import (
    AppendMessage,
    CreateSession,
    DeleteSession,
    LoadMessages,
    NewChat,
    SelectSession,
    SessionStore,
    SetSessions,
    UIMessage,
    filter_sessions,
)

# ============================================================
# Configuration
# ============================================================

API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
LOADING_TEXT = "Hold on, travelling at the speed of light..."
INTERRUPTED_TEXT = "_The answer was cut off. Please try again._"
SOURCES_PREVIEW = 3

st.set_page_config(
    page_title="Atheron",
    page_icon="🪐",
    layout="wide",
    initial_sidebar_state="expanded"
)

# ============================================================
# Custom CSS
# ============================================================

st.markdown("""
<style>
    /* Deep space theme */
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&family=Space+Grotesk:wght@600&display=swap');

    html, body, [class*="css"], .stMarkdown, .stText, p {
        font-family: 'Inter', sans-serif;
    }

    .stApp {
        background: radial-gradient(ellipse at top, #111827 0%, #030712 70%);
        color: #e5e7eb;
    }

    h1, h2, h3 {
        font-family: 'Space Grotesk', sans-serif;
        letter-spacing: -0.5px;
    }

    .main .block-container {
        padding-top: 2rem;
        max-width: 900px;
    }

    .stChatMessage {
        background-color: rgba(17, 24, 39, 0.7);
        border: 1px solid #1f2937;
        border-radius: 12px;
    }

    [data-testid="stSidebar"] {
        background-color: #0b1120;
        border-right: 1px solid #1f2937;
    }

    .source-chip {
        display: inline-block;
        padding: 0.15rem 0.6rem;
        margin: 0 0.3rem 0.3rem 0;
        border-radius: 999px;
        border: 1px solid #374151;
        font-size: 0.8rem;
        color: #93c5fd;
    }
</style>
""", unsafe_allow_html=True)


# ============================================================
# Session State Initialization
# ============================================================

def init_session_state():
    """Initialize session state variables."""
    if "view" not in st.session_state:
        st.session_state.view = SessionStore()
    if "backend_connected" not in st.session_state:
        st.session_state.backend_connected = False
    if "user_id" not in st.session_state:
        st.session_state.user_id = os.getenv("ATHERON_USER_ID", "")


def get_view() -> SessionStore:
    return st.session_state.view


def get_client() -> AtheronClient:
    return AtheronClient(API_BASE_URL, user_id=st.session_state.user_id or None)


def check_backend() -> bool:
    """Check if backend is available."""
    st.session_state.backend_connected = get_client().health()
    return st.session_state.backend_connected


def refresh_sessions():
    client = get_client()
    if not client.signed_in:
        get_view().dispatch(SetSessions([]))
        return
    try:
        get_view().dispatch(SetSessions(client.list_sessions()))
    except APIClientError as e:
        st.error(f"Could not load chats: {e.message}")


def open_session(session_id: str):
    """Attach the view to a stored session and load its messages."""
    view = get_view()
    view.dispatch(SelectSession(session_id))
    try:
        records = get_client().get_messages(session_id)
    except APIClientError as e:
        st.error(f"Could not load messages: {e.message}")
        return
    view.dispatch(LoadMessages(session_id, [UIMessage.from_api(r) for r in records]))


def remove_session(session_id: str):
    try:
        get_client().delete_session(session_id)
    except APIClientError as e:
        st.error(f"Could not delete chat: {e.message}")
        return
    get_view().dispatch(DeleteSession(session_id))


# ============================================================
# Rendering
# ============================================================

def render_sources(sources, expanded: bool = False):
    """Chips for the first few sources plus a panel with all of them."""
    if not sources:
        return
    chips = "".join(f'<span class="source-chip">{s.domain or s.title}</span>' for s in sources[:SOURCES_PREVIEW])
    st.markdown(chips, unsafe_allow_html=True)
    with st.expander(f"📚 Sources ({len(sources)})", expanded=expanded):
        for i, source in enumerate(sources, start=1):
            title = source.title or source.url or source.domain
            st.markdown(f"**{i}. [{title}]({source.url})**  \n{source.domain}")
            if source.description:
                st.caption(source.description)


def render_sidebar():
    """Render the sidebar with chat history."""
    view = get_view()

    with st.sidebar:
        st.title("🪐 Atheron")
        st.markdown("*Ask Athey about space & STEM*")

        if st.session_state.backend_connected:
            st.success("Backend Connected", icon="✅")
        else:
            st.error("Backend Disconnected", icon="❌")
            if st.button("🔄 Reconnect", use_container_width=True):
                if check_backend():
                    st.rerun()

        user_id = st.text_input("User ID", value=st.session_state.user_id, help="Needed to keep chat history")
        if user_id != st.session_state.user_id:
            st.session_state.user_id = user_id
            view.dispatch(NewChat())
            refresh_sessions()
            st.rerun()

        if st.button("➕ New chat", use_container_width=True):
            view.dispatch(NewChat())
            st.rerun()

        if not st.session_state.user_id:
            st.caption("Chats are not saved without a user ID.")
            return

        query = st.text_input("🔎 Search chats", key="session_search")
        sessions = filter_sessions(view.state.sessions, query)
        st.caption(f"Results ({len(sessions)})" if query else "Your chats")

        if not sessions:
            st.caption("No chats yet." if not query else "No matching chats.")

        for session in sessions:
            session_id = session["id"]
            is_current = session_id == view.state.active_session_id
            col_title, col_delete = st.columns([0.82, 0.18])
            with col_title:
                label = f"{'▶ ' if is_current else ''}{session.get('title') or 'New Chat'}"
                if st.button(label, key=f"open_{session_id}", use_container_width=True):
                    open_session(session_id)
                    st.rerun()
            with col_delete:
                if st.button("🗑️", key=f"del_{session_id}", help="Delete chat"):
                    remove_session(session_id)
                    st.rerun()

        st.divider()
        active = view.state.active_session_id
        st.caption(f"Session: ...{active[-6:] if active else 'new'}")


def stream_answer(prompt: str) -> Optional[UIMessage]:
    """Send the conversation and render the answer as it arrives."""
    view = get_view()
    client = get_client()

    placeholder = st.empty()
    placeholder.markdown(f"_{LOADING_TEXT}_")

    try:
        reply = client.stream_chat(view.state.request_messages(), session_id=view.state.active_session_id)
    except APIClientError as e:
        placeholder.empty()
        st.error(f"Athey is unavailable right now: {e.message}")
        return None

    buffer = ""
    interrupted = None
    try:
        for chunk in reply:
            buffer += chunk
            placeholder.markdown(extract_sources(buffer).display_text + " ▌")
    except APIClientError as e:
        interrupted = e

    extraction = extract_sources(buffer)
    content = extraction.display_text
    if interrupted is not None:
        if not content:
            placeholder.empty()
            st.error(f"Athey is unavailable right now: {interrupted.message}")
            return None
        content = f"{content}\n\n{INTERRUPTED_TEXT}"
        st.warning(f"The connection dropped before the answer finished: {interrupted.message}")

    placeholder.markdown(content)
    if extraction.has_sources:
        render_sources(extraction.sources, expanded=True)

    if reply.session_id and reply.session_id != view.state.active_session_id:
        refresh_sessions()
        created = next((s for s in view.state.sessions if s["id"] == reply.session_id), None)
        view.dispatch(CreateSession(created or {"id": reply.session_id, "title": prompt}))

    return UIMessage(role="assistant", content=content, sources=tuple(extraction.sources))


def render_chat():
    """Render the main chat interface."""
    view = get_view()

    st.markdown("## ✨ Ask Athey")
    if view.state.showing_loaded_history:
        st.caption("Showing a saved chat. Ask a follow-up to continue it.")

    for message in view.state.messages:
        with st.chat_message(message.role):
            if message.role == "assistant":
                st.markdown(extract_sources(message.content).display_text)
                render_sources(list(message.sources))
            else:
                st.markdown(message.content)

    if prompt := st.chat_input("Ask about space, science or maths..."):
        view.dispatch(AppendMessage(UIMessage(role="user", content=prompt)))
        with st.chat_message("user"):
            st.markdown(prompt)

        with st.chat_message("assistant"):
            answer = stream_answer(prompt)

        if answer is not None:
            view.dispatch(AppendMessage(answer))
        if st.session_state.user_id:
            refresh_sessions()


def main():
    init_session_state()

    if not st.session_state.backend_connected:
        check_backend()
        if st.session_state.backend_connected:
            refresh_sessions()

    render_sidebar()

    if not st.session_state.backend_connected:
        st.warning(f"Cannot reach the backend at {API_BASE_URL}. Start it with `uvicorn atheron.api.main:app`.")
        return

    render_chat()


if __name__ == "__main__":
    main()
