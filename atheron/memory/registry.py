"""
Active Turn Registry - In-memory index of detectors with turns in flight.

When a session is deleted, every detector still attached to it must stop
writing to it. The registry lets the delete route find them.

Architecture note:
This is an in-memory index suitable for single-instance deployments.
Detectors are held weakly, so a finished request needs no cleanup.
"""
import threading
import weakref
from typing import TYPE_CHECKING, Dict, Optional

from atheron.core.logging_config import get_logger

if TYPE_CHECKING:
    from atheron.streaming.detector import TurnCompletionDetector

logger = get_logger(__name__)


class ActiveTurnRegistry:
    """
    Tracks which detectors are attached to which session.

    Example:
        >>> registry = ActiveTurnRegistry()
        >>> registry.register(detector)
        >>> registry.invalidate(detector.session_id)  # session deleted
    """

    def __init__(self):
        self._by_session: Dict[str, "weakref.WeakSet[TurnCompletionDetector]"] = {}
        self._lock = threading.RLock()

    def register(self, detector: "TurnCompletionDetector") -> None:
        """Index a detector under its current session id (no-op without one)."""
        session_id = detector.session_id
        if not session_id:
            return
        with self._lock:
            self._by_session.setdefault(session_id, weakref.WeakSet()).add(detector)
            logger.debug(f"Registered detector for session {session_id}")

    def release(self, detector: "TurnCompletionDetector", session_id: Optional[str] = None) -> None:
        """Forget a detector whose turn is over."""
        session_id = session_id or detector.session_id
        if not session_id:
            return
        with self._lock:
            detectors = self._by_session.get(session_id)
            if detectors is None:
                return
            detectors.discard(detector)
            if not detectors:
                del self._by_session[session_id]

    def invalidate(self, session_id: str) -> int:
        """
        Detach every detector from a deleted session.

        Returns:
            Number of detectors that were reset
        """
        with self._lock:
            detectors = list(self._by_session.pop(session_id, ()))

        for detector in detectors:
            detector.reset()

        if detectors:
            logger.info(f"Invalidated {len(detectors)} active turn(s) of session {session_id}")
        return len(detectors)

    def active_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._by_session.get(session_id, ()))


# Singleton instance
_registry: Optional[ActiveTurnRegistry] = None


def get_turn_registry() -> ActiveTurnRegistry:
    """Get or create the global registry."""
    global _registry
    if _registry is None:
        _registry = ActiveTurnRegistry()
    return _registry


def reset_turn_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _registry
    _registry = None
