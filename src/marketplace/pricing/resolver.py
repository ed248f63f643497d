"""Price and discount resolution.

Every entry point that needs a unit price or a promotion discount (checkout
validation, checkout completion, delivery quotes) goes through this module.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.catalogue.product import ProductVariant
from marketplace.errors import NotFound, PriceNotFound
from marketplace.pricing.tiers import select_unit_price
from marketplace.promotions.promotion import Promotion, PromotionUsage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DiscountResolution:
    """Outcome of applying a promotion code. ``warning`` is set when it was rejected."""

    amount: int = 0
    promotion_id: str | None = None
    warning: str | None = None

    @property
    def applied(self) -> bool:
        return self.promotion_id is not None


def resolve_variant_price(variant: ProductVariant, quantity: int, name: str | None = None) -> int:
    """Unit price for ``quantity`` of an already-loaded variant."""
    price = select_unit_price(variant.price_tiers, quantity)
    if not price:
        raise PriceNotFound({"price": [f"No price found for: {name or variant.sku or variant.id}"]})
    return price


def resolve_unit_price(variant_id, quantity: int) -> int:
    """Unit price for ``quantity`` of the variant stored under ``variant_id``."""
    variant = load_variant(variant_id)
    if variant is None:
        raise NotFound({"variant_id": [f"Product variant not found: {variant_id}"]})
    return resolve_variant_price(variant, quantity)


def compute_discount(promotion: Promotion, subtotal: int) -> int:
    """Discount clamped to ``[0, subtotal]``."""
    method = promotion.application_method
    if method is None:
        return 0
    return max(0, min(method.discount_for(subtotal), subtotal))


def resolve_discount(
    promo_code: str | None,
    subtotal: int,
    customer_id=None,
    vendor_id=None,
    now: datetime | None = None,
) -> DiscountResolution:
    """Evaluate a promotion code against a subtotal without consuming it.

    Never raises for business reasons: an unusable code yields a zero
    discount and a warning. Recording usage is the caller's job.
    """
    if not promo_code:
        return DiscountResolution()

    promotion = current_domain.repository_for(Promotion).by_code(promo_code)
    if promotion is None:
        return DiscountResolution(warning=f'Promo code "{promo_code}" not found')

    reason = promotion.rejection_reason(now=now or datetime.now(UTC), vendor_id=vendor_id)
    if reason is None and customer_id and promotion.customer_usage_limit:
        used = current_domain.repository_for(PromotionUsage).count_for_customer(promotion.id, customer_id)
        if used >= promotion.customer_usage_limit:
            reason = "has already been used the maximum number of times"

    if reason is not None:
        logger.info("Promotion rejected", promo_code=promo_code, reason=reason)
        return DiscountResolution(warning=f'Promo code "{promo_code}" {reason}')

    if promotion.application_method is None:
        return DiscountResolution(warning=f'Promo code "{promo_code}" has no discount configured')

    return DiscountResolution(amount=compute_discount(promotion, subtotal), promotion_id=str(promotion.id))


def load_variant(variant_id) -> ProductVariant | None:
    try:
        return current_domain.repository_for(ProductVariant).get(variant_id)
    except ObjectNotFoundError:
        return None
