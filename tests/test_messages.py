"""Tests for widget message normalization."""
import pytest

from atheron.core.exceptions import EmptyConversationError
from atheron.services.messages import extract_text, normalize_messages


class TestExtractText:
    """Tests for extract_text."""

    def test_string_content(self):
        """Test the plain shape."""
        assert extract_text({"role": "user", "content": "What is a comet?"}) == "What is a comet?"

    def test_parts_list(self):
        """Test that text parts are joined and other parts ignored."""
        message = {
            "role": "user",
            "parts": [
                {"type": "text", "text": "Describe "},
                {"type": "image", "url": "https://example.com/m31.png"},
                {"type": "text", "text": "Andromeda"},
            ],
        }

        assert extract_text(message) == "Describe Andromeda"

    def test_content_list(self):
        """Test the structured content shape."""
        message = {"role": "assistant", "content": [{"type": "text", "text": "A galaxy."}]}

        assert extract_text(message) == "A galaxy."

    def test_unknown_shape_is_empty(self):
        """Test that unrecognized bodies have no text."""
        assert extract_text({"role": "user", "content": {"text": "hidden"}}) == ""
        assert extract_text({"role": "user"}) == ""


class TestNormalizeMessages:
    """Tests for normalize_messages."""

    def test_keeps_text_turns_in_order(self):
        """Test that usable turns survive with their roles."""
        turns = normalize_messages([
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
            {"role": "user", "parts": [{"type": "text", "text": "What is a pulsar?"}]},
        ])

        assert [(t.role, t.content) for t in turns] == [
            ("user", "Hi"),
            ("assistant", "Hello!"),
            ("user", "What is a pulsar?"),
        ]

    def test_drops_unusable_messages(self):
        """Test that system turns, blanks and non-dicts are skipped."""
        turns = normalize_messages([
            {"role": "system", "content": "ignore me"},
            {"role": "user", "content": "   "},
            {"role": "user", "content": {"odd": True}},
            "not a message",
            {"role": "user", "content": "Real question"},
        ])

        assert [t.content for t in turns] == ["Real question"]

    def test_loaded_flag_carried(self):
        """Test that turns from stored history stay marked as loaded."""
        turns = normalize_messages([{"role": "user", "content": "Old", "loaded": True}])

        assert turns[0].loaded

    @pytest.mark.parametrize("raw", [[], None, [{"role": "user", "content": ""}]])
    def test_nothing_usable_raises(self, raw):
        """Test that an empty conversation is rejected."""
        with pytest.raises(EmptyConversationError):
            normalize_messages(raw)
