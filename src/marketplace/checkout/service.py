"""Checkout application service: Validate and Complete.

``validate_checkout`` is a read-only dry run that reports every problem it
finds. ``complete_checkout`` runs the same evaluation strictly, then places
the order in a single unit of work. The store owner is pushed a new-order
alert by the order event handler once that unit of work has committed.
"""

import json
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.checkout.evaluation import CheckoutSummary, evaluate_cart
from marketplace.checkout.placement import PlaceOrder
from marketplace.errors import RateLimited
from marketplace.order.counter import next_display_id
from marketplace.order.order import FulfillmentType, PaymentMethod
from marketplace.ratelimit import get_limiter
from marketplace.shared.clock import utcnow

logger = structlog.get_logger(__name__)

CREATE_ORDER_BUCKET = "create_order"


@dataclass
class CheckoutValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    summary: CheckoutSummary | None = None


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    display_id: int
    total: int
    discount_total: int
    delivery_total: int
    currency: str
    payment_status: str
    warnings: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Order #{self.display_id} placed successfully"


def validate_checkout(
    cart_id,
    customer_id,
    fulfillment_type: str = FulfillmentType.DELIVERY.value,
    delivery_address_id=None,
    is_express: bool = False,
    promo_code: str | None = None,
    now=None,
) -> CheckoutValidation:
    evaluation = evaluate_cart(
        cart_id,
        customer_id,
        fulfillment_type=fulfillment_type,
        now=now or utcnow(),
        delivery_address_id=delivery_address_id,
        is_express=is_express,
        promo_code=promo_code,
    )
    return CheckoutValidation(
        valid=not evaluation.errors,
        errors=evaluation.errors,
        warnings=evaluation.warnings,
        summary=evaluation.summary,
    )


def complete_checkout(
    cart_id,
    customer_id,
    payment_method: str,
    fulfillment_type: str = FulfillmentType.DELIVERY.value,
    delivery_address_id=None,
    payment_reference: str | None = None,
    notes: str | None = None,
    is_express: bool = False,
    promo_code: str | None = None,
    now=None,
) -> CheckoutResult:
    """Turn a cart into a pending order.

    Raises the typed checkout errors on the first fatal problem. Nothing is
    persisted unless the order, its audit event, the promotion usage and the
    cart removal all commit together.
    """
    now = now or utcnow()

    limit = get_limiter().limit(CREATE_ORDER_BUCKET, str(customer_id))
    if not limit.ok:
        logger.warning("Checkout rate limited", customer_id=str(customer_id), retry_after=limit.retry_after)
        raise RateLimited(
            {"_entity": ["Too many orders. Please wait before trying again."]},
            retry_after=limit.retry_after,
        )

    try:
        PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError({"payment_method": [f"Unknown payment method: {payment_method}"]}) from None

    evaluation = evaluate_cart(
        cart_id,
        customer_id,
        fulfillment_type=fulfillment_type,
        now=now,
        delivery_address_id=delivery_address_id,
        is_express=is_express,
        promo_code=promo_code,
        strict=True,
    )
    summary = evaluation.summary
    for warning in evaluation.warnings:
        logger.info("Checkout warning", cart_id=str(cart_id), warning=warning)

    # Allocated before the unit of work so a rolled-back order leaves a gap, not a duplicate
    display_id = next_display_id()

    placed = current_domain.process(
        PlaceOrder(
            cart_id=str(cart_id),
            customer_id=str(customer_id),
            vendor_id=str(evaluation.vendor.id),
            display_id=display_id,
            items=json.dumps([line.to_dict() for line in summary.items]),
            subtotal=summary.subtotal,
            tax_total=summary.tax_total,
            delivery_total=summary.delivery_total,
            fulfillment_type=fulfillment_type,
            delivery_address_id=str(evaluation.address.id) if evaluation.address else None,
            payment_method=payment_method,
            payment_reference=payment_reference,
            currency=summary.currency,
            promo_code=promo_code if summary.promotion_id else None,
            notes=notes,
        ),
        asynchronous=False,
    )

    logger.info(
        "Order placed",
        order_id=placed["order_id"],
        display_id=display_id,
        customer_id=str(customer_id),
        vendor_id=str(evaluation.vendor.id),
        total=placed["total"],
    )

    return CheckoutResult(
        order_id=placed["order_id"],
        display_id=display_id,
        total=placed["total"],
        discount_total=placed["discount_total"],
        delivery_total=placed["delivery_total"],
        currency=placed["currency"],
        payment_status=placed["payment_status"],
        warnings=list(evaluation.warnings),
    )
