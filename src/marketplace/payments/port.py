"""Payment verification port (abstract interface).

Checkout never talks to a payment provider directly; it asks a verifier
whether a client-supplied payment reference is good.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    status: str | None = None
    failure_reason: str | None = None


class PaymentVerifier(ABC):
    @abstractmethod
    def verify(self, reference: str, amount: int, currency: str) -> VerificationResult:
        """Check a payment reference against the expected amount."""
        ...
