"""Tests for fixed-window rate limiting."""
from datetime import datetime, timezone

import pytest

from passkey_auth.errors import RateLimited
from passkey_auth.services import Operation, RateLimiter, RateLimitRule


@pytest.fixture
def limiter(store, clock):
    rules = {
        Operation.REGISTER: RateLimitRule(window_seconds=300, max_attempts=3),
        Operation.AUTHENTICATE: RateLimitRule(window_seconds=60, max_attempts=5),
        Operation.ANY: RateLimitRule(window_seconds=60, max_attempts=30),
    }
    return RateLimiter(store, rules, clock=clock)


class TestRateLimiter:
    """Test attempt counting per identity and operation."""

    def test_rejects_attempt_over_maximum(self, limiter):
        assert [limiter.hit(Operation.REGISTER, "u1") for _ in range(3)] == [1, 2, 3]

        with pytest.raises(RateLimited):
            limiter.hit(Operation.REGISTER, "u1")

    def test_window_resets(self, limiter, clock):
        for _ in range(3):
            limiter.hit(Operation.REGISTER, "u1")
        with pytest.raises(RateLimited):
            limiter.hit(Operation.REGISTER, "u1")

        clock.advance(seconds=300)
        assert limiter.hit(Operation.REGISTER, "u1") == 1

    def test_identities_and_operations_counted_separately(self, limiter):
        for _ in range(3):
            limiter.hit(Operation.REGISTER, "u1")

        assert limiter.hit(Operation.REGISTER, "u2") == 1
        assert limiter.hit(Operation.AUTHENTICATE, "u1") == 1

    def test_disabled_limiter_never_rejects(self, store, clock):
        limiter = RateLimiter(
            store, {Operation.REGISTER: RateLimitRule(300, 1)}, enabled=False, clock=clock
        )
        for _ in range(5):
            assert limiter.hit(Operation.REGISTER, "u1") == 0

    def test_window_start_alignment(self):
        now = datetime(2026, 1, 1, 12, 3, 17, tzinfo=timezone.utc)

        assert RateLimiter.window_start(now, 60) == datetime(2026, 1, 1, 12, 3, tzinfo=timezone.utc)
        assert RateLimiter.window_start(now, 300) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_purge_drops_closed_windows(self, limiter, store, clock):
        limiter.hit(Operation.REGISTER, "u1")
        clock.advance(seconds=301)
        limiter.hit(Operation.REGISTER, "u2")
        clock.advance(seconds=200)

        assert limiter.purge() == 1
        assert limiter.hit(Operation.REGISTER, "u2") == 2
