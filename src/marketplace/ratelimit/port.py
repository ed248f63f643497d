"""Rate limiter port (abstract interface)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LimitResult:
    ok: bool
    retry_after: float = 0.0  # seconds until a token is available


@dataclass(frozen=True)
class BucketConfig:
    """Token bucket refilled at ``rate`` tokens per ``period`` seconds, holding at most ``capacity``."""

    rate: int
    period: float
    capacity: int


class RateLimiter(ABC):
    @abstractmethod
    def limit(self, bucket: str, key: str) -> LimitResult:
        """Consume one token from ``bucket`` for ``key``."""
        ...
