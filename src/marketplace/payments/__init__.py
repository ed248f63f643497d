"""Payment verifier factory: get_verifier() / set_verifier() / reset_verifier()."""

from marketplace.payments.fake_verifier import FakePaymentVerifier
from marketplace.payments.port import PaymentVerifier

_current_verifier: PaymentVerifier | None = None


def get_verifier() -> PaymentVerifier:
    """Return the current payment verifier. Defaults to FakePaymentVerifier."""
    global _current_verifier
    if _current_verifier is None:
        _current_verifier = FakePaymentVerifier()
    return _current_verifier


def set_verifier(verifier: PaymentVerifier) -> None:
    global _current_verifier
    _current_verifier = verifier


def reset_verifier() -> None:
    global _current_verifier
    _current_verifier = None
