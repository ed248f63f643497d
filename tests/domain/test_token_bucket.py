"""Tests for the token bucket rate limiter."""

import pytest

from marketplace.ratelimit.port import BucketConfig
from marketplace.ratelimit.token_bucket import TokenBucketRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    return TokenBucketRateLimiter({"create_order": BucketConfig(rate=10, period=60.0, capacity=5)}, clock=clock)


class TestTokenBucket:
    def test_burst_up_to_capacity(self, limiter):
        results = [limiter.limit("create_order", "cust-001").ok for _ in range(6)]
        assert results == [True] * 5 + [False]

    def test_retry_after_reflects_refill_rate(self, limiter):
        for _ in range(5):
            limiter.limit("create_order", "cust-001")
        result = limiter.limit("create_order", "cust-001")
        assert result.ok is False
        assert result.retry_after == pytest.approx(6.0)

    def test_tokens_refill_over_time(self, limiter, clock):
        for _ in range(5):
            limiter.limit("create_order", "cust-001")
        clock.advance(6.5)
        assert limiter.limit("create_order", "cust-001").ok is True
        assert limiter.limit("create_order", "cust-001").ok is False

    def test_keys_are_independent(self, limiter):
        for _ in range(5):
            limiter.limit("create_order", "cust-001")
        assert limiter.limit("create_order", "cust-002").ok is True

    def test_unknown_bucket(self, limiter):
        with pytest.raises(ValueError):
            limiter.limit("nope", "cust-001")

    def test_reset(self, limiter):
        for _ in range(5):
            limiter.limit("create_order", "cust-001")
        limiter.reset()
        assert limiter.limit("create_order", "cust-001").ok is True
