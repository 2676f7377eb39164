"""Unit tests for the turn completion detector."""
import asyncio

import pytest

from atheron.memory.conversation import ConversationTurn
from atheron.streaming.detector import DetectorConfig, TurnCompletionDetector, TurnState
from atheron.streaming.stream import ChatStream

from conftest import ANSWER_TEXT, SOURCE_BLOCK


class RecordingPersistence:
    """Collects writes instead of hitting the database."""

    def __init__(self, session_id="session-1", fail_user=False):
        self.session_id = session_id
        self.fail_user = fail_user
        self.user_turns = []
        self.assistant_turns = []

    async def persist_user_turn(self, session_id, text):
        self.user_turns.append((session_id, text))
        if self.fail_user:
            return None
        return session_id or self.session_id

    async def persist_assistant_turn(self, session_id, text, sources):
        self.assistant_turns.append((session_id, text, sources))


async def chunks(*parts):
    for part in parts:
        yield part


@pytest.fixture
def persistence():
    return RecordingPersistence()


@pytest.fixture
def detector(persistence, fast_config):
    return TurnCompletionDetector(persistence, config=fast_config)


class TestUserTurns:
    """Tests for user turn persistence."""

    @pytest.mark.asyncio
    async def test_user_turn_creates_session(self, detector, persistence):
        """Test that the first user turn returns and keeps the new session id."""
        session_id = await detector.observe_user_turn("What is a magnetar?")

        assert session_id == "session-1"
        assert detector.session_id == "session-1"
        assert persistence.user_turns == [(None, "What is a magnetar?")]
        assert detector.state == TurnState.USER_COMMITTED

    @pytest.mark.asyncio
    async def test_repeated_user_turn_written_once(self, detector, persistence):
        """Test that the same text observed twice is persisted once."""
        await detector.observe_user_turn("What is a magnetar?")
        await detector.observe_user_turn("  What is a magnetar?  ")

        assert len(persistence.user_turns) == 1

    @pytest.mark.asyncio
    async def test_later_turns_target_same_session(self, detector, persistence):
        """Test that follow-ups are written to the session of the first turn."""
        await detector.observe_user_turn("What is a magnetar?")
        await detector.observe_user_turn("How strong is its field?")

        assert persistence.user_turns[1] == ("session-1", "How strong is its field?")

    @pytest.mark.asyncio
    async def test_blank_user_turn_ignored(self, detector, persistence):
        """Test that whitespace is not a turn."""
        await detector.observe_user_turn("   ")

        assert persistence.user_turns == []

    @pytest.mark.asyncio
    async def test_seeded_history_not_rewritten(self, detector, persistence):
        """Test that the last stored user turn is not persisted again."""
        detector.seed([
            ConversationTurn(role="user", content="What is a pulsar?"),
            ConversationTurn(role="assistant", content="A rotating neutron star."),
        ])

        await detector.observe_user_turn("What is a pulsar?")

        assert persistence.user_turns == []

    @pytest.mark.asyncio
    async def test_failed_user_write_leaves_no_session(self, fast_config):
        """Test that a failed session creation keeps the detector unattached."""
        persistence = RecordingPersistence(fail_user=True)
        detector = TurnCompletionDetector(persistence, config=fast_config)

        session_id = await detector.observe_user_turn("What is a quasar?")

        assert session_id is None
        assert detector.session_id is None


class TestReadonly:
    """Tests for loaded-history and anonymous views."""

    @pytest.mark.asyncio
    async def test_view_history_blocks_writes(self, detector, persistence):
        """Test that nothing is written while a stored session is displayed."""
        detector.view_history("session-9", [ConversationTurn(role="user", content="Old question")])

        await detector.observe_user_turn("Old question")
        detector.observe_assistant_text(ANSWER_TEXT)
        detector.complete(ANSWER_TEXT)
        await detector.drain()

        assert detector.readonly
        assert detector.session_id == "session-9"
        assert persistence.user_turns == []
        assert persistence.assistant_turns == []
        assert not detector.timer_pending

    @pytest.mark.asyncio
    async def test_no_persistence_is_readonly(self, fast_config):
        """Test that a detector without a writer never tries to write."""
        detector = TurnCompletionDetector(None, config=fast_config)

        assert await detector.observe_user_turn("Hello") is None
        detector.complete(ANSWER_TEXT)
        assert detector.readonly

    @pytest.mark.asyncio
    async def test_reset_leaves_history_mode(self, detector):
        """Test that reset re-enables live observation and cancels the timer."""
        detector.view_history("session-9", [])
        detector.reset()

        assert not detector.readonly
        assert detector.session_id is None
        assert detector.state == TurnState.IDLE


class TestAssistantTurns:
    """Tests for quiescence, gating and exactly-once assistant writes."""

    @pytest.mark.asyncio
    async def test_quiet_window_persists_text(self, detector, persistence):
        """Test that text stable for a full window is written with its sources."""
        await detector.observe_user_turn("Why do black holes bend light?")
        detector.observe_assistant_text(ANSWER_TEXT + SOURCE_BLOCK)
        await asyncio.sleep(0.15)
        await detector.drain()

        assert len(persistence.assistant_turns) == 1
        session_id, content, sources = persistence.assistant_turns[0]
        assert session_id == "session-1"
        assert content == ANSWER_TEXT
        assert [s.domain for s in sources] == ["nasa.gov"]
        assert detector.state == TurnState.ASSISTANT_COMMITTED

    @pytest.mark.asyncio
    async def test_mutations_restart_timer(self, persistence):
        """Test that nothing is written while mutations keep arriving inside the window."""
        config = DetectorConfig(quiescence_seconds=0.2, min_assistant_chars=50, loading_placeholder="Hold on")
        detector = TurnCompletionDetector(persistence, session_id="session-1", config=config)

        detector.observe_assistant_text(ANSWER_TEXT[:60])
        await asyncio.sleep(0.1)
        detector.observe_assistant_text(ANSWER_TEXT[:80])
        await asyncio.sleep(0.1)
        detector.observe_assistant_text(ANSWER_TEXT)
        await asyncio.sleep(0.1)

        assert persistence.assistant_turns == []
        assert detector.timer_pending

        await asyncio.sleep(0.3)
        await detector.drain()

        assert [turn[1] for turn in persistence.assistant_turns] == [ANSWER_TEXT]

    @pytest.mark.asyncio
    async def test_late_mutations_do_not_write_again(self, detector, persistence):
        """Test that observations after the commit are ignored."""
        await detector.observe_user_turn("Why do black holes bend light?")
        detector.observe_assistant_text(ANSWER_TEXT)
        await asyncio.sleep(0.15)

        detector.observe_assistant_text(ANSWER_TEXT)
        detector.complete(ANSWER_TEXT)
        await asyncio.sleep(0.15)
        await detector.drain()

        assert len(persistence.assistant_turns) == 1

    @pytest.mark.asyncio
    async def test_short_text_is_gated(self, detector, persistence):
        """Test that mutations of 50 characters or fewer never arm the timer."""
        await detector.observe_user_turn("Hi")
        detector.observe_assistant_text("x" * 50)

        assert not detector.timer_pending
        await asyncio.sleep(0.1)
        assert persistence.assistant_turns == []

    @pytest.mark.asyncio
    async def test_placeholder_is_gated(self, detector, persistence):
        """Test that the loading placeholder is never persisted."""
        await detector.observe_user_turn("Hi")
        detector.observe_assistant_text("Hold on, travelling at the speed of light to fetch your answer...")

        assert not detector.timer_pending

    @pytest.mark.asyncio
    async def test_complete_writes_immediately_once(self, detector, persistence):
        """Test that an explicit completion skips the timer and writes once."""
        await detector.observe_user_turn("Why do black holes bend light?")
        detector.observe_assistant_text(ANSWER_TEXT)

        detector.complete(ANSWER_TEXT)
        detector.complete(ANSWER_TEXT)
        await detector.drain()

        assert not detector.timer_pending
        assert len(persistence.assistant_turns) == 1

    @pytest.mark.asyncio
    async def test_complete_accepts_short_answers(self, detector, persistence):
        """Test that the length gate only applies to partial text."""
        await detector.observe_user_turn("Is Pluto a planet?")
        detector.complete("No, a dwarf planet.")
        await detector.drain()

        assert persistence.assistant_turns[0][1] == "No, a dwarf planet."

    @pytest.mark.asyncio
    async def test_fail_drops_turn(self, detector, persistence):
        """Test that a broken stream discards the partial answer."""
        await detector.observe_user_turn("Why do black holes bend light?")
        detector.observe_assistant_text(ANSWER_TEXT)

        detector.fail("connection reset")
        await asyncio.sleep(0.15)
        await detector.drain()

        assert persistence.assistant_turns == []
        assert detector.state == TurnState.IDLE

    @pytest.mark.asyncio
    async def test_no_session_skips_assistant_write(self, fast_config):
        """Test that the answer goes nowhere when session creation failed."""
        persistence = RecordingPersistence(fail_user=True)
        detector = TurnCompletionDetector(persistence, config=fast_config)

        await detector.observe_user_turn("What is a quasar?")
        detector.complete(ANSWER_TEXT)
        await detector.drain()

        assert persistence.assistant_turns == []

    @pytest.mark.asyncio
    async def test_new_user_turn_opens_next_assistant_turn(self, detector, persistence):
        """Test that each turn gets its own assistant write."""
        await detector.observe_user_turn("First question")
        detector.complete(ANSWER_TEXT)
        await detector.observe_user_turn("Second question")
        detector.complete(ANSWER_TEXT + " More detail.")
        await detector.drain()

        assert len(persistence.assistant_turns) == 2


class TestStreamSubscription:
    """Tests for the detector driven by ChatStream events."""

    @pytest.mark.asyncio
    async def test_stream_events_persist_answer(self, detector, persistence):
        """Test that a full stream ends with one stored answer."""
        await detector.observe_user_turn("Why do black holes bend light?")
        stream = ChatStream(chunks(ANSWER_TEXT[:30], ANSWER_TEXT[30:], SOURCE_BLOCK), session_id="session-1")
        stream.subscribe(detector.handle)

        await stream.open()
        text = await stream.collect()
        await detector.drain()

        assert text == ANSWER_TEXT + SOURCE_BLOCK
        assert len(persistence.assistant_turns) == 1
        assert persistence.assistant_turns[0][1] == ANSWER_TEXT
        assert not detector.timer_pending

    @pytest.mark.asyncio
    async def test_stalled_stream_stores_full_answer(self, detector, persistence):
        """Test that a pause longer than the window does not store a truncated answer."""
        async def stalling():
            yield ANSWER_TEXT[:70]
            await asyncio.sleep(0.2)
            yield ANSWER_TEXT[70:]
            yield SOURCE_BLOCK

        await detector.observe_user_turn("Why do black holes bend light?")
        stream = ChatStream(stalling(), session_id="session-1")
        stream.subscribe(detector.handle)

        await stream.open()
        await stream.collect()
        await detector.drain()

        assert len(persistence.assistant_turns) == 1
        assert persistence.assistant_turns[0][1] == ANSWER_TEXT
        assert [s.domain for s in persistence.assistant_turns[0][2]] == ["nasa.gov"]

    @pytest.mark.asyncio
    async def test_quiet_window_holds_open_stream(self, detector, persistence):
        """Test that a quiet window during an open stream writes nothing."""
        await detector.observe_user_turn("Why do black holes bend light?")
        detector.begin_assistant_turn()
        detector.observe_assistant_text(ANSWER_TEXT)

        await asyncio.sleep(0.15)
        await detector.drain()

        assert persistence.assistant_turns == []
        assert detector.state == TurnState.AWAITING_ASSISTANT_STABLE

        detector.complete(ANSWER_TEXT + " More detail.")
        await detector.drain()

        assert [turn[1] for turn in persistence.assistant_turns] == [ANSWER_TEXT + " More detail."]

    @pytest.mark.asyncio
    async def test_abandoned_stream_drops_turn(self, detector, persistence):
        """Test that closing the stream early stores nothing."""
        await detector.observe_user_turn("Why do black holes bend light?")
        stream = ChatStream(chunks(ANSWER_TEXT, " More detail.", SOURCE_BLOCK), session_id="session-1")
        stream.subscribe(detector.handle)

        await stream.open()
        iterator = stream.__aiter__()
        assert await iterator.__anext__() == ANSWER_TEXT
        await iterator.aclose()
        await asyncio.sleep(0.15)
        await detector.drain()

        assert persistence.assistant_turns == []
        assert detector.state == TurnState.IDLE
        assert not detector.timer_pending
