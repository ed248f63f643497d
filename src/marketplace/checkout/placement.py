"""Order placement: command and handler.

Everything checkout persists happens in this one handler, so it commits or
rolls back as a single unit of work: the order and its items, the creation
audit event, the promotion claim and usage, the vendor-customer link and the
removal of the cart. The payment reference is verified here, against the total
the order is actually placed with.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.domain import marketplace
from marketplace.errors import PromotionInvalid
from marketplace.order.audit import OrderEvent, OrderEventType
from marketplace.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from marketplace.payments import get_verifier
from marketplace.pricing.resolver import resolve_discount
from marketplace.promotions.promotion import Promotion, PromotionUsage
from marketplace.shared.money import DEFAULT_CURRENCY
from marketplace.vendors.vendor import VendorCustomer

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    display_id = Integer(required=True)
    items = Text(required=True)  # JSON: list of priced line dicts
    subtotal = Integer(required=True)
    tax_total = Integer(default=0)
    delivery_total = Integer(default=0)
    fulfillment_type = String(required=True, max_length=20)
    delivery_address_id = Identifier()
    payment_method = String(required=True, max_length=30)
    payment_reference = String(max_length=255)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    promo_code = String(max_length=50)
    notes = Text()


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items

        # Promotion is re-checked here so the usage limit holds at commit time
        promotion, discount_total = self._claim_promotion(command)
        total = command.subtotal + (command.tax_total or 0) - discount_total + (command.delivery_total or 0)

        order = Order.place(
            display_id=command.display_id,
            customer_id=command.customer_id,
            vendor_id=command.vendor_id,
            items_data=items_data,
            subtotal=command.subtotal,
            tax_total=command.tax_total or 0,
            delivery_total=command.delivery_total or 0,
            discount_total=discount_total,
            fulfillment_type=command.fulfillment_type,
            delivery_address_id=command.delivery_address_id,
            payment_method=command.payment_method,
            payment_reference=command.payment_reference,
            payment_status=self._verify_payment(command, total),
            currency=command.currency or DEFAULT_CURRENCY,
            promotion_id=str(promotion.id) if promotion else None,
            notes=command.notes,
        )
        event = OrderEvent.record(
            order,
            actor_id=command.customer_id,
            event_type=OrderEventType.CREATED,
            to_status=OrderStatus.PENDING.value,
            reason=f"Customer notes: {command.notes}" if command.notes else None,
        )
        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(OrderEvent).add(event)

        if promotion is not None:
            current_domain.repository_for(Promotion).add(promotion)
            current_domain.repository_for(PromotionUsage).add(
                PromotionUsage(
                    promotion_id=promotion.id,
                    order_id=order.id,
                    customer_id=command.customer_id,
                    discount_amount=discount_total,
                    currency=order.currency,
                    created_at=order.created_at,
                )
            )

        current_domain.repository_for(VendorCustomer).record(command.vendor_id, command.customer_id)

        cart_repo = current_domain.repository_for(Cart)
        cart_repo.discard(cart_repo.get(command.cart_id))

        return {
            "order_id": str(order.id),
            "display_id": order.display_id,
            "total": order.total,
            "discount_total": order.discount_total,
            "delivery_total": order.delivery_total,
            "promotion_id": order.promotion_id,
            "item_count": len(order.items),
            "currency": order.currency,
            "payment_status": order.payment_status,
        }

    def _verify_payment(self, command, total: int) -> str:
        """Captured only for a reference the verifier accepts for ``total``; awaiting otherwise."""
        if PaymentMethod(command.payment_method) == PaymentMethod.CASH_ON_DELIVERY or not command.payment_reference:
            return PaymentStatus.AWAITING.value

        result = get_verifier().verify(command.payment_reference, total, command.currency or DEFAULT_CURRENCY)
        if not result.verified:
            logger.warning(
                "Payment reference not verified",
                payment_reference=command.payment_reference,
                reason=result.failure_reason,
            )
            return PaymentStatus.AWAITING.value
        return PaymentStatus.CAPTURED.value

    def _claim_promotion(self, command):
        if not command.promo_code:
            return None, 0

        resolution = resolve_discount(
            command.promo_code,
            command.subtotal,
            customer_id=command.customer_id,
            vendor_id=command.vendor_id,
        )
        if not resolution.applied:
            return None, 0

        promotion = current_domain.repository_for(Promotion).get(resolution.promotion_id)
        try:
            promotion.claim()
        except PromotionInvalid:
            logger.warning("Promotion exhausted at placement", promo_code=command.promo_code)
            return None, 0
        return promotion, resolution.amount
