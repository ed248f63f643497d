"""Cart aggregate: a customer's pending selection from a single vendor.

Carts are filled by the storefront and consumed by checkout, which deletes
them once an order has been placed. A cart past ``expires_at`` is treated as
missing.
"""

from datetime import UTC, datetime, timedelta

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.shared.money import DEFAULT_CURRENCY

CART_LIFETIME = timedelta(hours=24)


@marketplace.entity(part_of="Cart")
class CartLine:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.aggregate
class Cart:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    expires_at = DateTime(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()

    @classmethod
    def create(cls, customer_id, vendor_id, currency=DEFAULT_CURRENCY, now=None):
        now = now or datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            vendor_id=vendor_id,
            currency=currency or DEFAULT_CURRENCY,
            expires_at=now + CART_LIFETIME,
            created_at=now,
        )

    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at < now

    def extend(self, now=None):
        now = now or datetime.now(UTC)
        self.expires_at = now + CART_LIFETIME

    def add_line(self, variant_id, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = next((line for line in self.lines if str(line.variant_id) == str(variant_id)), None)
        if existing:
            existing.quantity += quantity
            return existing

        line = CartLine(variant_id=variant_id, quantity=quantity)
        self.add_lines(line)
        return line

    def clear(self):
        for line in list(self.lines):
            self.remove_lines(line)


@marketplace.repository(part_of=Cart)
class CartRepository:
    def for_customer_and_vendor(self, customer_id, vendor_id) -> Cart | None:
        return self._dao.query.filter(customer_id=str(customer_id), vendor_id=str(vendor_id)).all().first

    def discard(self, cart: Cart) -> None:
        """Delete a cart together with all of its lines."""
        cart.clear()
        self.add(cart)
        self._dao.delete(cart)
