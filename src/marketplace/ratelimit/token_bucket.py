"""In-process token bucket rate limiter."""

import threading
import time

from marketplace.ratelimit.port import BucketConfig, LimitResult, RateLimiter

DEFAULT_BUCKETS = {
    "create_order": BucketConfig(rate=10, period=60.0, capacity=5),
    "api_call": BucketConfig(rate=100, period=60.0, capacity=20),
}


class TokenBucketRateLimiter(RateLimiter):
    def __init__(self, buckets: dict[str, BucketConfig] | None = None, clock=time.monotonic):
        self.buckets = dict(DEFAULT_BUCKETS if buckets is None else buckets)
        self._clock = clock
        self._lock = threading.Lock()
        self._state: dict[tuple[str, str], tuple[float, float]] = {}

    def limit(self, bucket: str, key: str) -> LimitResult:
        config = self.buckets.get(bucket)
        if config is None:
            raise ValueError(f"Unknown rate limit bucket: {bucket}")

        refill_per_second = config.rate / config.period
        now = self._clock()

        with self._lock:
            tokens, updated_at = self._state.get((bucket, key), (float(config.capacity), now))
            tokens = min(config.capacity, tokens + (now - updated_at) * refill_per_second)

            if tokens >= 1:
                self._state[(bucket, key)] = (tokens - 1, now)
                return LimitResult(ok=True)

            self._state[(bucket, key)] = (tokens, now)
            return LimitResult(ok=False, retry_after=(1 - tokens) / refill_per_second)

    def reset(self):
        with self._lock:
            self._state.clear()
