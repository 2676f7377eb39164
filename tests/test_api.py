"""HTTP tests for the chat, session and health routes."""
import pytest
from fastapi.testclient import TestClient

from atheron.api.deps import get_chat, get_registry, get_store
from atheron.api.main import app
from atheron.services.chat_service import ChatService

from conftest import ANSWER_TEXT, SOURCE_BLOCK, FakeLLMClient, wait_for

AUTH = {"X-User-Id": "user_2abc", "X-User-Email": "ada@example.com"}
OTHER = {"X-User-Id": "user_9xyz"}


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def client(store, registry, fast_config, llm):
    service = ChatService(llm_client=llm, store=store, registry=registry, config=fast_config)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_chat] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def chat(client, text, headers=AUTH, session_id=None, history=()):
    body = {"messages": list(history) + [{"role": "user", "content": text}]}
    if session_id:
        body["session_id"] = session_id
    return client.post("/api/chat", json=body, headers=headers)


class TestChatEndpoint:
    """Tests for POST /api/chat."""

    def test_streams_answer_and_session_header(self, client, store):
        """Test the answer text and the session id header."""
        response = chat(client, "Why do black holes bend light?")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == ANSWER_TEXT + SOURCE_BLOCK
        session_id = response.headers["X-Session-Id"]
        assert "X-RateLimit-Remaining" in response.headers

        assert wait_for(lambda: len(store.get_messages(session_id)) == 2)
        assert store.get_messages(session_id)[1]["content"] == ANSWER_TEXT

    def test_follow_up_uses_session(self, client, store):
        """Test that a second request with the session id appends to it."""
        first = chat(client, "What is a magnetar?")
        session_id = first.headers["X-Session-Id"]
        wait_for(lambda: len(store.get_messages(session_id)) == 2)

        history = [
            {"role": "user", "content": "What is a magnetar?"},
            {"role": "assistant", "content": first.text},
        ]
        second = chat(client, "How strong is its field?", session_id=session_id, history=history)

        assert second.headers["X-Session-Id"] == session_id
        assert wait_for(lambda: len(store.get_messages(session_id)) == 4)
        assert len(store.list_sessions("user_2abc")) == 1

    def test_parts_shaped_messages(self, client, llm):
        """Test that structured widget messages reach the model as text."""
        body = {"messages": [{"role": "user", "parts": [{"type": "text", "text": "Hi Athey"}]}]}

        response = client.post("/api/chat", json=body, headers=AUTH)

        assert response.status_code == 200
        assert llm.calls[-1] == [{"role": "user", "content": "Hi Athey"}]

    def test_empty_conversation(self, client, llm):
        """Test that no usable text gives one error and no model call."""
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "  "}]}, headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"error": "No messages"}
        assert llm.calls == []

    def test_anonymous_chat_not_stored(self, client, store):
        """Test that callers without identity get an answer and no session."""
        response = chat(client, "Is Pluto a planet?", headers={})

        assert response.status_code == 200
        assert "X-Session-Id" not in response.headers

    def test_foreign_session(self, client, store):
        """Test that chatting into another user's session is a 404."""
        session = store.create_session("user_9xyz")

        response = chat(client, "Hello", session_id=session["id"])

        assert response.status_code == 404
        assert response.json()["error"] == "session_not_found"

    def test_provider_failure_is_503(self, client, llm):
        """Test that a cascade with nothing to give fails before streaming."""
        llm.fail_on_start = True

        response = chat(client, "Hello")

        assert response.status_code == 503
        assert response.json()["error"] == "llm_error"


class TestSessionEndpoints:
    """Tests for /api/sessions."""

    def test_requires_identity(self, client):
        """Test that session routes reject anonymous callers."""
        response = client.get("/api/sessions")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_create_and_list(self, client):
        """Test creating sessions and listing them newest first."""
        first = client.post("/api/sessions", json={"title": "Moons of Mars"}, headers=AUTH).json()
        second = client.post("/api/sessions", headers=AUTH).json()

        listed = client.get("/api/sessions", headers=AUTH).json()

        assert second["title"] == "New Chat"
        assert [s["id"] for s in listed] == [second["id"], first["id"]]
        assert client.get("/api/sessions", headers=OTHER).json() == []

    def test_messages_roundtrip(self, client):
        """Test appending messages and reading them back with titles applied."""
        session = client.post("/api/sessions", headers=AUTH).json()
        url = f"/api/sessions/{session['id']}/messages"

        created = client.post(url, json={"role": "user", "content": "Explain dark matter"}, headers=AUTH)
        client.post(url, json={"role": "assistant", "content": ANSWER_TEXT + SOURCE_BLOCK}, headers=AUTH)

        assert created.status_code == 200
        messages = client.get(url, headers=AUTH).json()
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[1]["content"] == ANSWER_TEXT
        assert client.get("/api/sessions", headers=AUTH).json()[0]["title"] == "Explain dark matter"

    def test_message_requires_role_and_content(self, client):
        """Test the 400 for incomplete message bodies."""
        session = client.post("/api/sessions", headers=AUTH).json()

        response = client.post(f"/api/sessions/{session['id']}/messages", json={"content": "hi"}, headers=AUTH)

        assert response.status_code == 400
        assert response.json()["message"] == "Role and content required"

    def test_messages_of_foreign_session(self, client):
        """Test that another user's messages are not readable."""
        session = client.post("/api/sessions", headers=AUTH).json()

        response = client.get(f"/api/sessions/{session['id']}/messages", headers=OTHER)

        assert response.status_code == 404

    def test_delete_by_query_and_path(self, client):
        """Test both delete forms."""
        first = client.post("/api/sessions", headers=AUTH).json()
        second = client.post("/api/sessions", headers=AUTH).json()

        assert client.delete(f"/api/sessions?id={first['id']}", headers=AUTH).json() == {"success": True}
        assert client.delete(f"/api/sessions/{second['id']}", headers=AUTH).json() == {"success": True}
        assert client.get("/api/sessions", headers=AUTH).json() == []

    def test_delete_without_id(self, client):
        """Test that the query form needs an id."""
        response = client.delete("/api/sessions", headers=AUTH)

        assert response.status_code == 400
        assert response.json()["message"] == "Session ID required"

    def test_delete_missing_session(self, client):
        """Test that deleting an unknown or foreign session is a 404."""
        session = client.post("/api/sessions", headers=AUTH).json()

        assert client.delete(f"/api/sessions/{session['id']}", headers=OTHER).status_code == 404
        assert client.delete("/api/sessions/does-not-exist", headers=AUTH).status_code == 404


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        """Test liveness."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_without_llm_keys(self, client):
        """Test that readiness fails when no provider is configured."""
        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
