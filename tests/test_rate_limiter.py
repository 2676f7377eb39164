"""Tests for the sliding window rate limiter."""
from datetime import datetime, timedelta

from atheron.core.rate_limiter import RateLimiter


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_limit_per_identifier(self):
        """Test that each identifier gets its own allowance."""
        limiter = RateLimiter(requests_per_minute=2)

        assert limiter.is_allowed("user_2abc") == (True, 1)
        assert limiter.is_allowed("user_2abc") == (True, 0)
        assert limiter.is_allowed("user_2abc") == (False, 0)
        assert limiter.is_allowed("anon:10.0.0.1") == (True, 1)

    def test_window_slides(self):
        """Test that old requests stop counting after a minute."""
        limiter = RateLimiter(requests_per_minute=1)
        limiter.is_allowed("user_2abc")
        limiter._requests["user_2abc"] = [datetime.utcnow() - timedelta(minutes=2)]

        assert limiter.is_allowed("user_2abc") == (True, 0)

    def test_reset_time(self):
        """Test that the reset time is a minute after the oldest request."""
        limiter = RateLimiter(requests_per_minute=1)
        limiter.is_allowed("user_2abc")

        oldest = limiter._requests["user_2abc"][0]
        assert limiter.get_reset_time("user_2abc") == oldest + timedelta(minutes=1)
        assert limiter.is_allowed("user_2abc") == (False, 0)
