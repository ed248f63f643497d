"""Product and ProductVariant aggregates with tiered price lists.

A product belongs to one vendor. Each sellable unit (``"1kg"``, ``"500ml"``)
is a ProductVariant carrying its own availability and price tiers. Variants
are aggregates in their own right so carts and orders reference them by id.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.shared.money import DEFAULT_CURRENCY


class ProductStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


@marketplace.aggregate
class Product:
    vendor_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    slug = String(max_length=255)
    status = String(choices=ProductStatus, default=ProductStatus.PUBLISHED.value)
    created_at = DateTime()


@marketplace.entity(part_of="ProductVariant")
class PriceTier:
    """One row of a variant's price list.

    ``min_quantity``/``max_quantity`` are inclusive bounds; missing bounds
    mean 1 and unbounded. A sale amount applies only when below ``amount``.
    """

    amount = Integer(required=True, min_value=0)
    sale_amount = Integer(min_value=0)
    min_quantity = Integer(min_value=0)
    max_quantity = Integer(min_value=0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)

    @invariant.post
    def quantity_bounds_must_be_ordered(self):
        if self.min_quantity is not None and self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValidationError({"max_quantity": ["Maximum quantity cannot be below minimum quantity"]})


@marketplace.aggregate
class ProductVariant:
    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    sku = String(max_length=100)
    unit = String(max_length=50, default="")
    is_available = Boolean(default=True)
    weight_grams = Integer(min_value=0)
    price_tiers = HasMany(PriceTier)
    created_at = DateTime()

    @classmethod
    def create(cls, product_id, vendor_id, unit="", sku=None, weight_grams=None, is_available=True):
        return cls(
            product_id=product_id,
            vendor_id=vendor_id,
            unit=unit,
            sku=sku,
            weight_grams=weight_grams,
            is_available=is_available,
            created_at=datetime.now(UTC),
        )

    def add_tier(self, amount, sale_amount=None, min_quantity=None, max_quantity=None, currency=DEFAULT_CURRENCY):
        tier = PriceTier(
            amount=amount,
            sale_amount=sale_amount,
            min_quantity=min_quantity,
            max_quantity=max_quantity,
            currency=currency,
        )
        self.add_price_tiers(tier)
        return tier

    def mark_unavailable(self):
        self.is_available = False

    def mark_available(self):
        self.is_available = True
