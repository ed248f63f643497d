"""Order aggregate (CQRS): the placed order and its status lifecycle.

Orders are created once per successful checkout and then only change through
the guarded transitions below. They are never deleted; terminal states are
kept for audit.

State Machine:
    pending → confirmed → preparing → ready_for_pickup → out_for_delivery → delivered → completed
    ready_for_pickup → delivered (pickup orders)
    pending/confirmed/preparing/ready_for_pickup/out_for_delivery → cancelled
    delivered/completed → refunded
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition
from marketplace.order.events import OrderPlaced, OrderStatusChanged, RiderAssigned
from marketplace.shared.money import DEFAULT_CURRENCY


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class FulfillmentStatus(Enum):
    NOT_FULFILLED = "not_fulfilled"
    FULFILLED = "fulfilled"
    SHIPPED = "shipped"
    RETURNED = "returned"


class PaymentStatus(Enum):
    AWAITING = "awaiting"
    CAPTURED = "captured"
    REFUNDED = "refunded"
    CANCELED = "canceled"


class FulfillmentType(Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    SELF_DELIVERY = "self_delivery"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    MOBILE_MONEY = "mobile_money"
    CARD = "card"


# State machine transition map
VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.REFUNDED},
    OrderStatus.COMPLETED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# States from which a customer may cancel their own order
CUSTOMER_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
}

ACTIVE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
}

_FULFILLED_STATES = {OrderStatus.DELIVERED, OrderStatus.COMPLETED}


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """Snapshot of a purchased line, frozen at checkout.

    Title and prices are copied from the catalogue so historical orders do not
    move when catalogue prices change later.
    """

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    subtotal = Integer(required=True, min_value=0)
    tax_total = Integer(default=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    display_id = Integer(required=True, min_value=1)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    fulfillment_status = String(choices=FulfillmentStatus, default=FulfillmentStatus.NOT_FULFILLED.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.AWAITING.value)
    fulfillment_type = String(choices=FulfillmentType, default=FulfillmentType.DELIVERY.value)
    payment_method = String(choices=PaymentMethod)
    payment_reference = String(max_length=255)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    delivery_address_id = Identifier()
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    subtotal = Integer(default=0, min_value=0)
    total = Integer(default=0, min_value=0)
    tax_total = Integer(default=0, min_value=0)
    discount_total = Integer(default=0, min_value=0)
    delivery_total = Integer(default=0, min_value=0)
    promotion_id = Identifier()
    rider_id = Identifier()
    rider_name = String(max_length=255)
    rider_phone = String(max_length=30)
    notes = Text()
    items = HasMany(OrderItem)
    revision = Integer(default=0)  # number of audit events written for this order
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        display_id,
        customer_id,
        vendor_id,
        items_data,
        subtotal,
        delivery_total,
        discount_total,
        tax_total=0,
        fulfillment_type=FulfillmentType.DELIVERY.value,
        delivery_address_id=None,
        payment_method=None,
        payment_reference=None,
        payment_status=PaymentStatus.AWAITING.value,
        currency=DEFAULT_CURRENCY,
        promotion_id=None,
        notes=None,
    ):
        """Create a pending order from priced line snapshots.

        ``items_data`` is a list of dicts with product_id, variant_id, title,
        quantity, unit_price and subtotal.
        """
        now = datetime.now(UTC)
        order = cls(
            display_id=display_id,
            status=OrderStatus.PENDING.value,
            fulfillment_status=FulfillmentStatus.NOT_FULFILLED.value,
            payment_status=payment_status,
            fulfillment_type=fulfillment_type,
            payment_method=payment_method,
            payment_reference=payment_reference,
            customer_id=customer_id,
            vendor_id=vendor_id,
            delivery_address_id=delivery_address_id,
            currency=currency,
            subtotal=subtotal,
            tax_total=tax_total,
            discount_total=discount_total,
            delivery_total=delivery_total,
            total=subtotal + tax_total - discount_total + delivery_total,
            promotion_id=promotion_id,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for item in items_data:
            order.add_items(
                OrderItem(
                    product_id=item["product_id"],
                    variant_id=item["variant_id"],
                    title=item["title"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    subtotal=item["subtotal"],
                    tax_total=item.get("tax_total", 0),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                display_id=order.display_id,
                customer_id=order.customer_id,
                vendor_id=order.vendor_id,
                fulfillment_type=order.fulfillment_type,
                payment_method=order.payment_method,
                payment_status=order.payment_status,
                item_count=len(order.items),
                subtotal=order.subtotal,
                discount_total=order.discount_total,
                delivery_total=order.delivery_total,
                total=order.total,
                currency=order.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus):
        current = OrderStatus(self.status)
        if not can_transition(current, target_status):
            raise InvalidTransition(current.value, target_status.value)

    def _settle_payment(self, target_status: OrderStatus):
        payment = PaymentStatus(self.payment_status)
        if target_status == OrderStatus.DELIVERED:
            self.payment_status = PaymentStatus.CAPTURED.value
        elif target_status == OrderStatus.REFUNDED and payment == PaymentStatus.CAPTURED:
            self.payment_status = PaymentStatus.REFUNDED.value
        elif target_status == OrderStatus.CANCELLED and payment == PaymentStatus.AWAITING:
            self.payment_status = PaymentStatus.CANCELED.value

    def transition_to(self, target_status: OrderStatus, reason=None, estimated_prep_time=None) -> OrderStatus:
        """Move to ``target_status`` and return the previous status.

        Raises InvalidTransition, leaving the order untouched, when the pair
        is not in the transition map. Fulfilment and payment status follow
        the new order status, and an ``OrderStatusChanged`` event is raised.
        """
        previous = OrderStatus(self.status)
        self._assert_can_transition(target_status)

        self.status = target_status.value
        if target_status in _FULFILLED_STATES:
            self.fulfillment_status = FulfillmentStatus.FULFILLED.value
        elif target_status == OrderStatus.CANCELLED:
            self.fulfillment_status = FulfillmentStatus.NOT_FULFILLED.value
        self._settle_payment(target_status)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                display_id=self.display_id,
                customer_id=self.customer_id,
                vendor_id=self.vendor_id,
                from_status=previous.value,
                to_status=target_status.value,
                payment_status=self.payment_status,
                total=self.total,
                currency=self.currency,
                reason=reason,
                estimated_prep_time=estimated_prep_time,
                placed_at=self.created_at,
                changed_at=self.updated_at,
            )
        )
        return previous

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def confirm(self, estimated_prep_time=None, reason=None):
        return self.transition_to(OrderStatus.CONFIRMED, reason, estimated_prep_time)

    def start_preparing(self, reason=None):
        return self.transition_to(OrderStatus.PREPARING, reason)

    def mark_ready(self, reason=None):
        return self.transition_to(OrderStatus.READY_FOR_PICKUP, reason)

    def dispatch(self, rider_id, rider_name, rider_phone=None):
        previous = self.transition_to(OrderStatus.OUT_FOR_DELIVERY, f"Rider assigned: {rider_name}")
        self.rider_id = rider_id
        self.rider_name = rider_name
        self.rider_phone = rider_phone

        self.raise_(
            RiderAssigned(
                order_id=self.id,
                display_id=self.display_id,
                vendor_id=self.vendor_id,
                rider_id=rider_id,
                rider_name=rider_name,
                rider_phone=rider_phone,
                delivery_address_id=self.delivery_address_id,
                delivery_total=self.delivery_total,
                currency=self.currency,
                assigned_at=self.updated_at,
            )
        )
        return previous

    def mark_delivered(self, reason=None):
        return self.transition_to(OrderStatus.DELIVERED, reason)

    def complete(self, reason=None):
        return self.transition_to(OrderStatus.COMPLETED, reason)

    def refund(self, reason=None):
        return self.transition_to(OrderStatus.REFUNDED, reason)

    def cancel(self, by_customer=False, reason=None):
        """Cancel the order. Customers may only cancel before it is ready."""
        current = OrderStatus(self.status)
        if by_customer and current not in CUSTOMER_CANCELLABLE_STATES:
            raise InvalidTransition(current.value, OrderStatus.CANCELLED.value)
        return self.transition_to(OrderStatus.CANCELLED, reason)

    def next_revision(self) -> int:
        self.revision = (self.revision or 0) + 1
        return self.revision

    @property
    def is_active(self) -> bool:
        return OrderStatus(self.status) in ACTIVE_STATES

    def totals_snapshot(self) -> dict:
        return {
            "snapshot_total": self.total,
            "snapshot_tax_total": self.tax_total,
            "snapshot_discount_total": self.discount_total,
            "snapshot_delivery_total": self.delivery_total,
        }


@marketplace.repository(part_of=Order)
class OrderRepository:
    def by_display_id(self, display_id: int) -> Order | None:
        return self._dao.query.filter(display_id=display_id).all().first

