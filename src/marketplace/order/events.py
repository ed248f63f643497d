"""Domain events for the Order aggregate.

Raised by the aggregate itself and dispatched once the unit of work that
persisted the change has committed. They feed the read-side projections and
the push notification handler.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A cart was turned into a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    display_id = Integer(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    fulfillment_type = String(required=True)
    payment_method = String()
    payment_status = String(required=True)
    item_count = Integer(default=0)
    subtotal = Integer(default=0)
    discount_total = Integer(default=0)
    delivery_total = Integer(default=0)
    total = Integer(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along one edge of its transition table."""

    __version__ = 1

    order_id = Identifier(required=True)
    display_id = Integer(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    payment_status = String(required=True)
    total = Integer(default=0)
    currency = String(required=True)
    reason = Text()
    estimated_prep_time = Integer()  # minutes, confirmations only
    placed_at = DateTime()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class RiderAssigned:
    """A rider picked the order up for delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    display_id = Integer(required=True)
    vendor_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    rider_name = String(required=True)
    rider_phone = String()
    delivery_address_id = Identifier()
    delivery_total = Integer(default=0)
    currency = String(required=True)
    assigned_at = DateTime(required=True)
