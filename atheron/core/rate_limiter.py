"""
Rate Limiter - Control request frequency per user.

Every chat request fans out to a paid LLM provider, so requests are
counted per authenticated user in a sliding one-minute window.

This limiter is in-memory; with several API instances each one keeps
its own window.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
import threading

from atheron.core.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding window rate limiter keyed by user id.

    Example:
        >>> limiter = RateLimiter(requests_per_minute=30)
        >>> limiter.is_allowed("user_2abc")
        (True, 29)
    """

    def __init__(
        self,
        requests_per_minute: int = 30,
        cleanup_interval_minutes: int = 5
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_minute: Maximum requests allowed per minute
            cleanup_interval_minutes: How often idle users are forgotten
        """
        self.limit = requests_per_minute
        self.window = timedelta(minutes=1)
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)

        self._requests: Dict[str, List[datetime]] = {}
        self._lock = threading.RLock()
        self._last_cleanup = datetime.utcnow()

        logger.info(f"RateLimiter initialized: {requests_per_minute} requests/minute")

    def is_allowed(self, identifier: str) -> Tuple[bool, int]:
        """
        Record a request and report whether it may proceed.

        Args:
            identifier: User id (or client address for anonymous callers)

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        with self._lock:
            self._maybe_cleanup()

            now = datetime.utcnow()
            recent = self._prune(identifier, now)

            if len(recent) >= self.limit:
                logger.warning(f"Rate limit exceeded for: {identifier[:8]}...")
                return False, 0

            recent.append(now)
            return True, self.limit - len(recent)

    def get_reset_time(self, identifier: str) -> datetime:
        """
        Get when the oldest counted request leaves the window.

        Args:
            identifier: User id

        Returns:
            Datetime when the limit frees up a slot
        """
        with self._lock:
            timestamps = self._requests.get(identifier)
            if not timestamps:
                return datetime.utcnow()
            return min(timestamps) + self.window

    def _prune(self, identifier: str, now: datetime) -> List[datetime]:
        """Drop timestamps outside the window and return what is left."""
        cutoff = now - self.window
        recent = [t for t in self._requests.get(identifier, []) if t > cutoff]
        self._requests[identifier] = recent
        return recent

    def _maybe_cleanup(self) -> None:
        """Forget identifiers that have been idle for a whole window."""
        now = datetime.utcnow()

        if now - self._last_cleanup < self.cleanup_interval:
            return

        for identifier in list(self._requests.keys()):
            if not self._prune(identifier, now):
                del self._requests[identifier]

        self._last_cleanup = now
        logger.debug(f"Rate limiter cleanup: {len(self._requests)} active users")


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the global rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        from atheron.core.config import get_settings
        _rate_limiter = RateLimiter(
            requests_per_minute=get_settings().rate_limit_per_minute
        )
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the global limiter (used by tests)."""
    global _rate_limiter
    _rate_limiter = None
