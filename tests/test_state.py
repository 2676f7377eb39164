"""Tests for the Streamlit view state reducer."""
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

MARS = {"id": "s-mars", "title": "Moons of Mars"}
JUPITER = {"id": "s-jupiter", "title": "Jupiter's storms"}


def viewing(session_id="s-mars"):
    return ChatViewState(
        sessions=(MARS, JUPITER),
        active_session_id=session_id,
        showing_loaded_history=True,
        messages=(UIMessage(role="user", content="Phobos?", loaded=True),),
    )


class TestReduce:
    """Tests for reduce()."""

    def test_create_session_goes_first_and_becomes_active(self):
        """Test that a new session is prepended once and selected."""
        state = reduce(ChatViewState(sessions=(MARS,)), CreateSession(JUPITER))
        state = reduce(state, CreateSession(JUPITER))

        assert state.sessions == (JUPITER, MARS)
        assert state.active_session_id == "s-jupiter"

    def test_select_clears_messages(self):
        """Test that switching sessions empties the view until messages load."""
        state = reduce(viewing(), SelectSession("s-jupiter"))

        assert state.active_session_id == "s-jupiter"
        assert state.messages == ()
        assert not state.showing_loaded_history

    def test_select_active_session_is_noop(self):
        """Test that reselecting keeps the same state object."""
        before = viewing()

        assert reduce(before, SelectSession("s-mars")) is before

    def test_delete_active_session_resets_view(self):
        """Test that deleting the open session returns to a new chat."""
        state = reduce(viewing(), DeleteSession("s-mars"))

        assert state == ChatViewState(sessions=(JUPITER,))

    def test_delete_other_session_keeps_view(self):
        """Test that deleting another session only updates the list."""
        state = reduce(viewing(), DeleteSession("s-jupiter"))

        assert state.sessions == (MARS,)
        assert state.active_session_id == "s-mars"
        assert len(state.messages) == 1

    def test_new_chat_keeps_sessions(self):
        """Test that a new chat detaches the view."""
        state = reduce(viewing(), NewChat())

        assert state.sessions == (MARS, JUPITER)
        assert state.active_session_id is None
        assert state.messages == ()

    def test_load_messages_for_active_session(self):
        """Test that loaded messages mark the view as history."""
        state = reduce(ChatViewState(active_session_id="s-mars"), LoadMessages("s-mars", [UIMessage("user", "Hi")]))

        assert state.showing_loaded_history
        assert state.messages[0].content == "Hi"

    def test_late_messages_are_ignored(self):
        """Test that messages for a session the user left are dropped."""
        before = ChatViewState(active_session_id="s-jupiter")

        assert reduce(before, LoadMessages("s-mars", [UIMessage("user", "Hi")])) is before

    def test_append_and_request_messages(self):
        """Test that appended messages are sent back with their loaded flag."""
        state = reduce(viewing(), AppendMessage(UIMessage(role="user", content="And Deimos?")))

        assert state.request_messages() == [
            {"role": "user", "content": "Phobos?", "loaded": True},
            {"role": "user", "content": "And Deimos?", "loaded": False},
        ]

    def test_unknown_action(self):
        """Test that unknown actions change nothing."""
        before = viewing()

        assert reduce(before, object()) is before


class TestUIMessage:
    """Tests for API record conversion."""

    def test_from_api(self):
        """Test that stored messages come back loaded with their sources."""
        message = UIMessage.from_api({
            "role": "assistant",
            "content": "Io is volcanic.",
            "sources": [{"domain": "nasa.gov", "url": "https://nasa.gov/io"}, "junk"],
        })

        assert message.loaded
        assert [s.domain for s in message.sources] == ["nasa.gov"]


class TestSessionStore:
    """Tests for SessionStore."""

    def test_subscribers_see_changes_only(self):
        """Test that subscribers are told about real changes and can leave."""
        store = SessionStore()
        seen = []
        unsubscribe = store.subscribe(lambda state, action: seen.append(type(action).__name__))

        store.dispatch(SetSessions([MARS]))
        store.dispatch(SelectSession("s-mars"))
        store.dispatch(SelectSession("s-mars"))
        unsubscribe()
        store.dispatch(NewChat())

        assert seen == ["SetSessions", "SelectSession"]
        assert store.state.active_session_id is None


class TestFilterSessions:
    """Tests for sidebar search."""

    def test_case_insensitive_title_match(self):
        """Test title search."""
        assert filter_sessions([MARS, JUPITER], "JUPITER") == [JUPITER]

    def test_blank_query_returns_all(self):
        """Test that an empty search shows everything."""
        assert filter_sessions((MARS, JUPITER), "  ") == [MARS, JUPITER]
