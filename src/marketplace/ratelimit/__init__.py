"""Rate limiter factory.

Provides get_limiter() / set_limiter() to swap implementations; defaults to
the in-process token bucket limiter.
"""

from marketplace.ratelimit.port import RateLimiter
from marketplace.ratelimit.token_bucket import TokenBucketRateLimiter

_current_limiter: RateLimiter | None = None


def get_limiter() -> RateLimiter:
    global _current_limiter
    if _current_limiter is None:
        _current_limiter = TokenBucketRateLimiter()
    return _current_limiter


def set_limiter(limiter: RateLimiter) -> None:
    """Override the active rate limiter (useful for tests)."""
    global _current_limiter
    _current_limiter = limiter


def reset_limiter() -> None:
    global _current_limiter
    _current_limiter = None
