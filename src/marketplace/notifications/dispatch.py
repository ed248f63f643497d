"""Push notifications for order events.

Reacts to Order events after the originating unit of work has committed and
sends one push per recipient through the configured channel. Delivery is best
effort: a failing channel is logged and never undoes the order change.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.customers.address import CustomerAddress
from marketplace.domain import marketplace
from marketplace.notifications import get_channel
from marketplace.notifications.templates import DELIVERY_ASSIGNED, NEW_ORDER, ORDER_STATUS, render
from marketplace.order.events import OrderPlaced, OrderStatusChanged, RiderAssigned
from marketplace.order.order import Order, OrderStatus
from marketplace.vendors.vendor import Vendor

logger = structlog.get_logger(__name__)


def _lookup(aggregate_cls, identifier):
    if not identifier:
        return None
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        return None


def send_push(recipient_id, template: str, payload: dict) -> bool:
    """Render ``template`` and push it to ``recipient_id``. Never raises."""
    if not recipient_id:
        logger.warning("Notification skipped, no recipient", template=template)
        return False

    try:
        message = render(template, payload)
        result = get_channel().send(
            recipient_id=str(recipient_id),
            title=message["title"],
            body=message["body"],
            data=message["data"],
        )
    except Exception as exc:
        logger.error(
            "Notification dispatch failed",
            recipient_id=str(recipient_id),
            template=template,
            error=str(exc),
            exc_info=True,
        )
        return False

    if result.get("status") != "sent":
        logger.warning(
            "Notification not delivered",
            recipient_id=str(recipient_id),
            template=template,
            error=result.get("error"),
        )
        return False

    logger.debug("Notification sent", recipient_id=str(recipient_id), template=template)
    return True


@marketplace.event_handler(part_of=Order)
class OrderNotificationDispatcher:
    """Tells the store, the customer and the rider about order changes."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        vendor = _lookup(Vendor, event.vendor_id)
        send_push(
            vendor.owner_id if vendor else None,
            NEW_ORDER,
            {
                "order_id": str(event.order_id),
                "display_id": event.display_id,
                "item_count": event.item_count,
                "total": event.total,
                "currency": event.currency,
            },
        )

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        message = None
        if event.to_status == OrderStatus.CONFIRMED.value and event.estimated_prep_time:
            message = (
                f"Order #{event.display_id} has been confirmed. "
                f"Estimated preparation time: {event.estimated_prep_time} minutes"
            )

        send_push(
            event.customer_id,
            ORDER_STATUS,
            {
                "order_id": str(event.order_id),
                "display_id": event.display_id,
                "status": event.to_status,
                "message": message,
            },
        )

    @handle(RiderAssigned)
    def on_rider_assigned(self, event: RiderAssigned) -> None:
        vendor = _lookup(Vendor, event.vendor_id)
        address = _lookup(CustomerAddress, event.delivery_address_id)
        send_push(
            event.rider_id,
            DELIVERY_ASSIGNED,
            {
                "order_id": str(event.order_id),
                "display_id": event.display_id,
                "pickup_address": vendor.address if vendor else None,
                "delivery_address": address.address if address else None,
                "estimated_fare": event.delivery_total,
                "currency": event.currency,
            },
        )
