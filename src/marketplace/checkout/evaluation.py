"""Cart evaluation shared by checkout validation and completion.

The same checks run in two modes. Collecting mode (``Validate``) records
every problem as an error or warning and carries on so the customer sees them
all at once. Strict mode (``Complete``) raises the first fatal problem as a
typed exception. Evaluation never writes anything.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.catalogue.product import Product, ProductVariant
from marketplace.customers.address import CustomerAddress
from marketplace.delivery.eligibility import ensure_within_zone
from marketplace.delivery.fare import DeliveryEstimate, FareBreakdown, calculate_fare, estimate_delivery_time
from marketplace.errors import EmptyCart, Expired, NotFound, OwnershipMismatch, StoreUnavailable, first_message
from marketplace.order.order import FulfillmentType
from marketplace.pricing.resolver import DiscountResolution, resolve_discount, resolve_variant_price
from marketplace.shared.clock import local_hour
from marketplace.shared.money import DEFAULT_CURRENCY
from marketplace.vendors.vendor import Vendor

logger = structlog.get_logger(__name__)


class _CartRejected(Exception):
    """Stops a collecting evaluation when the cart itself is unusable."""


@dataclass(frozen=True)
class PricedLine:
    variant_id: str
    product_id: str
    title: str
    quantity: int
    unit_price: int
    subtotal: int

    def to_dict(self) -> dict:
        return {
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "title": self.title,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "subtotal": self.subtotal,
        }


@dataclass
class CheckoutSummary:
    items: list[PricedLine]
    subtotal: int
    tax_total: int
    discount_total: int
    delivery_total: int
    total: int
    currency: str
    fulfillment_type: str
    store: dict | None = None
    delivery_address: dict | None = None
    delivery_estimate: dict | None = None
    promotion_id: str | None = None

    @property
    def item_count(self) -> int:
        return len(self.items)


@dataclass
class Evaluation:
    """Everything checkout learned about a cart."""

    cart: Cart | None = None
    vendor: Vendor | None = None
    address: CustomerAddress | None = None
    lines: list[PricedLine] = field(default_factory=list)
    distance_km: float | None = None
    fare: FareBreakdown | None = None
    estimate: DeliveryEstimate | None = None
    discount: DiscountResolution = field(default_factory=DiscountResolution)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    summary: CheckoutSummary | None = None
    weight_grams: int = 0

    @property
    def subtotal(self) -> int:
        return sum(line.subtotal for line in self.lines)


class _Evaluator:
    def __init__(self, strict: bool):
        self.strict = strict
        self.result = Evaluation()

    def fail(self, exc: Exception) -> None:
        if self.strict:
            raise exc
        self.result.errors.append(first_message(exc))

    def warn(self, message: str) -> None:
        self.result.warnings.append(message)

    def _get(self, aggregate_cls, identifier):
        if not identifier:
            return None
        try:
            return current_domain.repository_for(aggregate_cls).get(identifier)
        except ObjectNotFoundError:
            return None

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def load_cart(self, cart_id, customer_id, now: datetime) -> Cart:
        cart = self._get(Cart, cart_id)
        if cart is None:
            problem = NotFound({"cart_id": ["Cart not found"]})
        elif str(cart.customer_id) != str(customer_id):
            problem = OwnershipMismatch({"cart_id": ["Cart does not belong to this customer"]})
        elif cart.is_expired(now):
            problem = Expired({"cart_id": ["Cart has expired. Please add items again."]})
        elif not cart.lines:
            problem = EmptyCart({"cart_id": ["Cart is empty"]})
        else:
            self.result.cart = cart
            return cart

        self.fail(problem)
        raise _CartRejected()

    def load_vendor(self, cart: Cart) -> Vendor | None:
        vendor = self._get(Vendor, cart.vendor_id)
        if vendor is None:
            self.fail(NotFound({"vendor_id": ["Store not found"]}))
        elif vendor.is_busy:
            self.fail(StoreUnavailable({"vendor_id": ["Store is currently not accepting orders. Please try again later."]}))
        self.result.vendor = vendor
        return vendor

    def check_delivery(self, vendor, delivery_address_id, customer_id) -> None:
        if not delivery_address_id:
            self.fail(ValidationError({"delivery_address_id": ["Delivery address is required for delivery orders"]}))
            return

        address = self._get(CustomerAddress, delivery_address_id)
        if address is None:
            self.fail(NotFound({"delivery_address_id": ["Delivery address not found"]}))
            return
        if str(address.customer_id) != str(customer_id):
            self.fail(OwnershipMismatch({"delivery_address_id": ["Delivery address does not belong to this customer"]}))
            return

        self.result.address = address
        if vendor is None:
            return
        if not address.has_location:
            self.warn("Delivery address is missing location coordinates. Delivery fee may vary.")
            return
        if not vendor.has_location:
            self.warn("Store location not set. Delivery fee may vary.")
            return

        try:
            self.result.distance_km = ensure_within_zone(vendor, address)
        except ValidationError as exc:
            self.fail(exc)

    def price_lines(self, cart: Cart) -> None:
        weight = 0
        for line in cart.lines:
            variant = self._get(ProductVariant, line.variant_id)
            if variant is None:
                self.fail(NotFound({"items": ["A product in your cart no longer exists"]}))
                continue
            if not variant.is_available:
                self.fail(ValidationError({"items": ["Product is no longer available"]}))
                continue
            if str(variant.vendor_id) != str(cart.vendor_id):
                self.fail(ValidationError({"items": ["Invalid product in cart"]}))
                continue

            product = self._get(Product, variant.product_id)
            if product is None:
                self.fail(NotFound({"items": ["Product not found"]}))
                continue

            try:
                unit_price = resolve_variant_price(variant, line.quantity, name=product.name)
            except ValidationError as exc:
                self.fail(exc)
                continue

            self.result.lines.append(
                PricedLine(
                    variant_id=str(variant.id),
                    product_id=str(product.id),
                    title=f"{product.name} - {variant.unit}" if variant.unit else product.name,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    subtotal=unit_price * line.quantity,
                )
            )
            weight += (variant.weight_grams or 0) * line.quantity

        self.result.weight_grams = weight

    def price_delivery(self, is_express: bool, now: datetime) -> None:
        if self.result.distance_km is None:
            return
        self.result.fare = calculate_fare(
            distance_km=self.result.distance_km,
            order_subtotal=self.result.subtotal,
            hour_of_day=local_hour(now),
            is_express=is_express,
            weight_grams=self.result.weight_grams,
        )
        self.result.estimate = estimate_delivery_time(self.result.distance_km, is_express)

    def apply_promotion(self, promo_code, customer_id, vendor_id, now: datetime) -> None:
        self.result.discount = resolve_discount(
            promo_code,
            self.result.subtotal,
            customer_id=customer_id,
            vendor_id=vendor_id,
            now=now,
        )
        if self.result.discount.warning:
            self.warn(self.result.discount.warning)

    def summarize(self, fulfillment_type: str) -> CheckoutSummary:
        result = self.result
        cart, vendor, address = result.cart, result.vendor, result.address

        subtotal = result.subtotal
        tax_total = 0
        discount_total = result.discount.amount
        delivery_total = result.fare.total if result.fare else 0

        estimate = None
        if result.fare is not None:
            estimate = {
                "fee": result.fare.total,
                "is_free_delivery": result.fare.is_free_delivery,
                "distance_km": round(result.distance_km, 2),
                "min_minutes": result.estimate.min_minutes,
                "max_minutes": result.estimate.max_minutes,
                "breakdown": result.fare.to_dict(),
            }

        result.summary = CheckoutSummary(
            items=list(result.lines),
            subtotal=subtotal,
            tax_total=tax_total,
            discount_total=discount_total,
            delivery_total=delivery_total,
            total=subtotal + tax_total - discount_total + delivery_total,
            currency=cart.currency or DEFAULT_CURRENCY,
            fulfillment_type=fulfillment_type,
            store={"id": str(vendor.id), "name": vendor.name, "phone": vendor.phone} if vendor else None,
            delivery_address=(
                {"id": str(address.id), "name": address.name, "phone": address.phone, "address": address.address}
                if address
                else None
            ),
            delivery_estimate=estimate,
            promotion_id=result.discount.promotion_id,
        )
        return result.summary


def evaluate_cart(
    cart_id,
    customer_id,
    fulfillment_type: str,
    now: datetime,
    delivery_address_id=None,
    is_express: bool = False,
    promo_code: str | None = None,
    strict: bool = False,
) -> Evaluation:
    """Run every checkout check against a cart and price it.

    In strict mode the first fatal problem is raised. Otherwise problems are
    collected on the returned Evaluation; a cart-level problem (missing,
    foreign, expired or empty cart) stops evaluation with no summary.
    """
    evaluator = _Evaluator(strict=strict)

    try:
        cart = evaluator.load_cart(cart_id, customer_id, now)
    except _CartRejected:
        return evaluator.result

    vendor = evaluator.load_vendor(cart)

    if FulfillmentType(fulfillment_type) == FulfillmentType.DELIVERY:
        evaluator.check_delivery(vendor, delivery_address_id, customer_id)

    evaluator.price_lines(cart)
    evaluator.price_delivery(is_express, now)
    evaluator.apply_promotion(promo_code, customer_id, cart.vendor_id, now)
    evaluator.summarize(fulfillment_type)

    logger.debug(
        "Cart evaluated",
        cart_id=str(cart_id),
        errors=len(evaluator.result.errors),
        warnings=len(evaluator.result.warnings),
    )
    return evaluator.result
