"""
API Client - HTTP access to the Atheron backend for the Streamlit UI.
"""
from typing import Any, Dict, Iterator, List, Optional

import requests

from atheron.core.logging_config import get_logger

logger = get_logger(__name__)


class APIClientError(Exception):
    """The backend answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ChatReply:
    """
    A streamed answer. Iterate it for text chunks.

    A connection that breaks mid-answer raises APIClientError from the
    iteration; chunks already yielded stay valid.
    """

    def __init__(self, response: requests.Response):
        self._response = response
        self.session_id: Optional[str] = response.headers.get("X-Session-Id")

    def __iter__(self) -> Iterator[str]:
        try:
            for chunk in self._response.iter_content(chunk_size=None, decode_unicode=True):
                if chunk:
                    yield chunk
        except requests.exceptions.RequestException as e:
            logger.warning(f"Answer stream broke off: {e}")
            raise APIClientError(f"Connection lost while streaming: {e}") from e
        finally:
            self._response.close()


class AtheronClient:
    """
    Thin requests wrapper around the REST API.

    Example:
        >>> client = AtheronClient("http://127.0.0.1:8000", user_id="user_2abc")
        >>> reply = client.stream_chat([{"role": "user", "content": "Hi"}])
        >>> "".join(reply)
    """

    def __init__(
        self,
        base_url: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.email = email
        self.name = name
        self.timeout = timeout

    @property
    def signed_in(self) -> bool:
        return bool(self.user_id)

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        if self.email:
            headers["X-User-Email"] = self.email
        if self.name:
            headers["X-User-Name"] = self.name
        return headers

    def _request(self, method: str, path: str, stream: bool = False, **kwargs) -> requests.Response:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                stream=stream,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise APIClientError(f"Backend unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                payload = response.json()
                message = payload.get("message") or payload.get("error") or response.text
            except ValueError:
                message = response.text
            response.close()
            raise APIClientError(message, status_code=response.status_code)

        return response

    def health(self) -> bool:
        try:
            return self._request("GET", "/health").status_code == 200
        except APIClientError:
            return False

    def list_sessions(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/sessions").json()

    def create_session(self, title: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/api/sessions", json={"title": title}).json()

    def delete_session(self, session_id: str) -> bool:
        return self._request("DELETE", f"/api/sessions/{session_id}").json().get("success", False)

    def get_messages(self, session_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/api/sessions/{session_id}/messages").json()

    def stream_chat(self, messages: List[Dict[str, Any]], session_id: Optional[str] = None) -> ChatReply:
        """Start a streamed answer. Raises APIClientError before any text on failure."""
        response = self._request(
            "POST",
            "/api/chat",
            stream=True,
            json={"messages": messages, "session_id": session_id},
        )
        return ChatReply(response)
