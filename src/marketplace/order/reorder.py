"""Reorder: refill the customer's cart from a past order."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.domain import marketplace
from marketplace.errors import NotFound, OwnershipMismatch
from marketplace.order.order import Order
from marketplace.pricing.resolver import load_variant
from marketplace.shared.clock import utcnow

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Cart")
class Reorder:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@marketplace.command_handler(part_of=Cart)
class ReorderHandler:
    @handle(Reorder)
    def reorder(self, command):
        try:
            order = current_domain.repository_for(Order).get(command.order_id)
        except ObjectNotFoundError:
            raise NotFound({"order_id": ["Order not found"]}) from None
        if str(order.customer_id) != str(command.customer_id):
            raise OwnershipMismatch({"order_id": ["Order does not belong to this customer"]})
        if not order.items:
            raise ValidationError({"order_id": ["Order has no items"]})

        now = utcnow()
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.for_customer_and_vendor(order.customer_id, order.vendor_id)
        if cart is None:
            cart = Cart.create(order.customer_id, order.vendor_id, currency=order.currency, now=now)
        else:
            cart.clear()
            cart.extend(now)

        added, unavailable = 0, []
        for item in order.items:
            variant = load_variant(item.variant_id)
            if variant is None or not variant.is_available:
                unavailable.append(item.title)
                continue
            cart.add_line(variant.id, item.quantity)
            added += 1

        cart_repo.add(cart)

        if unavailable:
            message = f"Some items are no longer available: {', '.join(unavailable)}"
        else:
            message = "All items added to cart"

        logger.info("Order reordered", order_id=str(order.id), cart_id=str(cart.id), added=added)
        return {
            "cart_id": str(cart.id),
            "added_count": added,
            "unavailable_items": unavailable,
            "message": message,
        }


def reorder(order_id, customer_id) -> dict:
    """Rebuild the cart for the order's store with every still-available item."""
    return current_domain.process(Reorder(order_id=str(order_id), customer_id=str(customer_id)), asynchronous=False)
