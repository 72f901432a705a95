"""
Tests for the token bucket rate limiter.

Tests cover:
- TokenBucket construction, consumption and lazy refill
- Retry-after rounding
- RateLimiter per-key isolation, overrides and status

Author: dev-agent Team
"""

import pytest

from conftest import FakeClock
from devagent.config import RateLimitConfig
from devagent.services.rate_limiter import RateLimiter, RateLimitResult, TokenBucket


class TestTokenBucket:
    """Tests for TokenBucket."""

    def test_starts_full(self, clock):
        """Test that a new bucket holds its full capacity."""
        bucket = TokenBucket(capacity=5, refill_rate=1, clock=clock)

        assert bucket.get_available_tokens() == 5

    @pytest.mark.parametrize("capacity,refill_rate", [(0, 1), (-1, 1), (1, 0), (1, -2)])
    def test_rejects_non_positive_parameters(self, capacity, refill_rate):
        """Test that capacity and refill rate must be positive."""
        with pytest.raises(ValueError):
            TokenBucket(capacity=capacity, refill_rate=refill_rate)

    def test_consume_until_empty(self, clock):
        """Test that exactly capacity calls succeed without refill."""
        bucket = TokenBucket(capacity=3, refill_rate=1, clock=clock)

        assert [bucket.try_consume() for _ in range(4)] == [True, True, True, False]
        assert bucket.get_available_tokens() == 0

    def test_failed_consume_leaves_bucket_unchanged(self, clock):
        """Test that a denied consume takes nothing."""
        bucket = TokenBucket(capacity=2, refill_rate=1, clock=clock)

        assert bucket.try_consume(3) is False
        assert bucket.get_available_tokens() == 2

    def test_negative_consume_rejected(self, clock):
        """Test that consuming negative tokens raises."""
        bucket = TokenBucket(capacity=2, refill_rate=1, clock=clock)

        with pytest.raises(ValueError):
            bucket.try_consume(-1)

    def test_refills_with_elapsed_time(self, clock):
        """Test lazy refill at refill_rate tokens per second."""
        bucket = TokenBucket(capacity=10, refill_rate=2, clock=clock)
        for _ in range(10):
            bucket.try_consume()

        clock.advance(1.5)

        assert bucket.get_available_tokens() == 3

    def test_refill_never_exceeds_capacity(self, clock):
        """Test that tokens are clamped to capacity."""
        bucket = TokenBucket(capacity=4, refill_rate=100, clock=clock)
        bucket.try_consume()

        clock.advance(60)

        assert bucket.get_available_tokens() == 4
        assert bucket.tokens == 4

    def test_available_tokens_is_floored(self, clock):
        """Test that fractional tokens are rounded down."""
        bucket = TokenBucket(capacity=2, refill_rate=1, clock=clock)
        bucket.try_consume(2)

        clock.advance(0.9)

        assert bucket.get_available_tokens() == 0

    def test_clock_going_backwards_is_ignored(self):
        """Test that negative elapsed time does not remove tokens."""
        clock = FakeClock(start=100.0)
        bucket = TokenBucket(capacity=3, refill_rate=1, clock=clock)
        bucket.try_consume()

        clock.now = 50.0

        assert bucket.get_available_tokens() == 2

    def test_retry_after_zero_when_tokens_available(self, clock):
        """Test retry_after is zero while at least one token remains."""
        bucket = TokenBucket(capacity=1, refill_rate=1, clock=clock)

        assert bucket.get_retry_after() == 0

    def test_retry_after_rounds_up(self, clock):
        """Test retry_after = ceil((1 - tokens) / refill_rate)."""
        bucket = TokenBucket(capacity=1, refill_rate=0.3, clock=clock)
        bucket.try_consume()

        # (1 - 0) / 0.3 = 3.33 -> 4
        assert bucket.get_retry_after() == 4

        clock.advance(2)
        # (1 - 0.6) / 0.3 = 1.33 -> 2
        assert bucket.get_retry_after() == 2

    def test_retry_after_at_least_one_second(self, clock):
        """Test that a denied caller is never told to retry immediately."""
        bucket = TokenBucket(capacity=1, refill_rate=1000, clock=clock)
        bucket.try_consume()

        assert bucket.get_retry_after() == 1

    def test_consume_then_available(self, clock):
        """Test available tokens after a partial drain."""
        bucket = TokenBucket(capacity=10, refill_rate=1, clock=clock)
        for _ in range(6):
            bucket.try_consume()

        assert bucket.get_available_tokens() == 4

    def test_refill_sequence(self, clock):
        """Test refill over successive clock advances up to capacity."""
        bucket = TokenBucket(capacity=100, refill_rate=10, clock=clock)
        bucket.try_consume(50)

        clock.advance(1)
        assert bucket.get_available_tokens() == 60

        clock.advance(2)
        assert bucket.get_available_tokens() == 80

        clock.advance(10)
        assert bucket.get_available_tokens() == 100

    def test_retry_after_when_drained(self, clock):
        """Test a drained bucket with rate 1 asks for one second."""
        bucket = TokenBucket(capacity=5, refill_rate=1, clock=clock)
        bucket.try_consume(5)

        assert bucket.get_retry_after() == 1

    def test_tokens_stay_within_bounds(self, clock):
        """Test 0 <= tokens <= capacity across mixed consumes and refills."""
        bucket = TokenBucket(capacity=7, refill_rate=2.5, clock=clock)

        for step in range(200):
            bucket.try_consume(step % 4)
            clock.advance((step % 5) * 0.3)
            bucket.get_available_tokens()
            assert 0 <= bucket.tokens <= bucket.capacity

    def test_reset_refills(self, clock):
        """Test reset restores full capacity."""
        bucket = TokenBucket(capacity=3, refill_rate=1, clock=clock)
        bucket.try_consume(3)

        bucket.reset()

        assert bucket.get_available_tokens() == 3


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_check_allows_and_reports_remaining(self, clock):
        """Test an allowed check returns the tokens left."""
        limiter = RateLimiter(default_capacity=3, default_refill_rate=1, clock=clock)

        result = limiter.check("tool")

        assert result == RateLimitResult(allowed=True, remaining_tokens=2, retry_after=0)

    def test_check_denies_when_exhausted(self, clock):
        """Test the first call beyond capacity is denied with a retry hint."""
        limiter = RateLimiter(default_capacity=2, default_refill_rate=0.5, clock=clock)
        limiter.check("tool")
        limiter.check("tool")

        result = limiter.check("tool")

        assert result.allowed is False
        assert result.remaining_tokens == 0
        assert result.retry_after == 2

    def test_keys_are_isolated(self, clock):
        """Test that exhausting one key does not affect another."""
        limiter = RateLimiter(default_capacity=1, default_refill_rate=1, clock=clock)

        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_allowed_again_after_refill(self, clock):
        """Test a denied key recovers once retry_after has elapsed."""
        limiter = RateLimiter(default_capacity=1, default_refill_rate=0.5, clock=clock)
        limiter.check("tool")
        denied = limiter.check("tool")

        clock.advance(denied.retry_after)

        assert limiter.check("tool").allowed

    def test_custom_limits(self, clock):
        """Test per-key overrides passed at construction."""
        limiter = RateLimiter(
            default_capacity=100,
            default_refill_rate=10,
            custom_limits={"slow": RateLimitConfig(capacity=1, refill_rate=1)},
            clock=clock,
        )

        assert limiter.check("slow").allowed
        assert not limiter.check("slow").allowed
        assert limiter.check("fast").remaining_tokens == 99

    def test_set_limit_replaces_bucket(self, clock):
        """Test set_limit discards the existing bucket."""
        limiter = RateLimiter(default_capacity=1, default_refill_rate=1, clock=clock)
        limiter.check("tool")

        limiter.set_limit("tool", RateLimitConfig(capacity=5, refill_rate=1))

        assert limiter.check("tool").remaining_tokens == 4

    def test_from_config(self, clock):
        """Test building a limiter from RateLimitConfig."""
        limiter = RateLimiter.from_config(RateLimitConfig(capacity=2, refill_rate=1), clock=clock)

        limiter.check("tool")

        assert limiter.get_status() == {"tool": {"available": 1, "capacity": 2}}

    def test_status_only_lists_used_keys(self, clock):
        """Test buckets are created lazily."""
        limiter = RateLimiter(clock=clock)

        assert limiter.get_status() == {}

    def test_reset_and_reset_all(self, clock):
        """Test reset refills one key and reset_all refills every key."""
        limiter = RateLimiter(default_capacity=1, default_refill_rate=1, clock=clock)
        limiter.check("a")
        limiter.check("b")

        limiter.reset("a")
        assert limiter.check("a").allowed
        assert not limiter.check("b").allowed

        limiter.reset_all()
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_reset_unknown_key_is_noop(self, clock):
        """Test resetting a key with no bucket does nothing."""
        limiter = RateLimiter(clock=clock)

        limiter.reset("missing")

        assert limiter.get_status() == {}
