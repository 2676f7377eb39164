"""Pytest configuration and shared fixtures."""
import asyncio
import os
import time

# Settings are read at import time by the app module
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["PERPLEXITY_API_KEY"] = ""
os.environ["GROQ_API_KEY"] = ""
os.environ["GOOGLE_API_KEY"] = ""

import pytest

from atheron.core.config import get_settings
from atheron.core.exceptions import LLMError
from atheron.core.rate_limiter import reset_rate_limiter
from atheron.database.connection import DatabaseConnection, reset_database
from atheron.database.init_db import drop_tables, init_tables
from atheron.llm.client import reset_llm_client
from atheron.memory.registry import ActiveTurnRegistry, reset_turn_registry
from atheron.memory.store import ConversationStore, reset_conversation_store
from atheron.services.chat_service import reset_chat_service
from atheron.streaming.detector import DetectorConfig

get_settings.cache_clear()

ANSWER_TEXT = (
    "Black holes bend light because mass curves spacetime around them, "
    "an effect called gravitational lensing. [1][2]"
)
SOURCE_BLOCK = (
    "\n<!-- SOURCES_START -->\n"
    '[{"domain":"nasa.gov","title":"Black Holes","url":"https://science.nasa.gov/universe/black-holes/",'
    '"description":"NASA overview"}]\n'
    "<!-- SOURCES_END -->"
)


class FakeLLMClient:
    """Scripted stand-in for LLMClient.stream()."""

    def __init__(self, chunks=None, fail_on_start=False, fail_after=None):
        self.chunks = list(chunks) if chunks is not None else [ANSWER_TEXT[:40], ANSWER_TEXT[40:], SOURCE_BLOCK]
        self.fail_on_start = fail_on_start
        self.fail_after = fail_after
        self.calls = []

    async def stream(self, messages, system_prompt=None):
        self.calls.append(messages)
        if self.fail_on_start:
            raise LLMError("All LLM providers failed")
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise LLMError("Answer interrupted: connection reset")
            yield chunk


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.02):
    """Poll until predicate() is truthy (background writes run on another loop)."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(interval)
    return predicate()


async def eventually(predicate, timeout: float = 2.0, interval: float = 0.02):
    """Async poll, letting background writes on the running loop finish."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        result = predicate()
        if result:
            return result
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def db():
    """Fresh in-memory database with all tables."""
    connection = DatabaseConnection("sqlite://")
    init_tables(connection)
    yield connection
    drop_tables(connection)
    connection.close()


@pytest.fixture
def store(db):
    return ConversationStore(db)


@pytest.fixture
def registry():
    return ActiveTurnRegistry()


@pytest.fixture
def fast_config():
    """Detector timings short enough for tests."""
    return DetectorConfig(quiescence_seconds=0.05, min_assistant_chars=50, loading_placeholder="Hold on")


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture(autouse=True)
def _fresh_singletons():
    """Module-level instances never leak between tests."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()
    reset_chat_service()
    reset_conversation_store()
    reset_turn_registry()
    reset_llm_client()
    reset_database()
