"""Typed failures raised by checkout, pricing and the order lifecycle.

All of them derive from protean's exceptions, so callers that already handle
``ValidationError`` / ``ObjectNotFoundError`` keep working, while the API layer
can map each type to a distinct HTTP status. Messages use protean's
``{"field": ["message"]}`` shape.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    """Cart, order, address, variant, product or store is missing.

    protean's ``ObjectNotFoundError`` carries no ``messages``; this one does, in
    the same shape as ``ValidationError``.
    """

    code = "not_found"

    def __init__(self, messages, **kwargs):
        self.messages = messages
        super().__init__(messages, **kwargs)


class Expired(NotFound):
    """Cart is past its expiry timestamp and is treated as missing."""

    code = "expired"


class OwnershipMismatch(ValidationError):
    code = "ownership_mismatch"


class EmptyCart(ValidationError):
    code = "empty_cart"


class StoreUnavailable(ValidationError):
    code = "store_unavailable"


class OutOfZone(ValidationError):
    code = "out_of_zone"


class PriceNotFound(ValidationError):
    code = "price_not_found"


class InvalidTransition(ValidationError):
    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__({"status": [f"Cannot transition from {from_status} to {to_status}"]})


class PromotionInvalid(ValidationError):
    """Soft failure. Converted into a warning and a zero discount, never surfaced."""

    code = "promotion_invalid"


class RateLimited(InvalidOperationError):
    code = "rate_limited"

    def __init__(self, messages, retry_after: float = 0.0):
        self.messages = messages
        self.retry_after = retry_after
        super().__init__(messages)


def first_message(exc: Exception) -> str:
    """Flatten a protean-style message dict into its first human-readable message."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, (list, tuple)) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(exc)
