"""Order summary: the lightweight row behind order listings and vendor dashboards.

Each row belongs to exactly one order, so projecting one order's events never
touches another order's row. Dashboard counts are filtered queries over these
rows, keyed by store and the local day the order was placed.
"""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.events import OrderPlaced, OrderStatusChanged, RiderAssigned
from marketplace.order.order import Order
from marketplace.shared.clock import local_date


@marketplace.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    display_id = Integer(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    status = String(required=True)
    payment_status = String()
    payment_method = String()
    fulfillment_type = String()
    item_count = Integer(default=0)
    subtotal = Integer(default=0)
    discount_total = Integer(default=0)
    delivery_total = Integer(default=0)
    total = Integer(default=0)
    currency = String()
    rider_id = Identifier()
    rider_name = String()
    placed_at = DateTime()
    placed_on = String(max_length=10)  # YYYY-MM-DD, marketplace local time
    updated_at = DateTime()


@marketplace.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                display_id=event.display_id,
                customer_id=event.customer_id,
                vendor_id=event.vendor_id,
                status="pending",
                payment_status=event.payment_status,
                payment_method=event.payment_method,
                fulfillment_type=event.fulfillment_type,
                item_count=event.item_count,
                subtotal=event.subtotal,
                discount_total=event.discount_total,
                delivery_total=event.delivery_total,
                total=event.total,
                currency=event.currency,
                placed_at=event.placed_at,
                placed_on=local_date(event.placed_at),
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.status = event.to_status
        summary.payment_status = event.payment_status
        summary.updated_at = event.changed_at
        repo.add(summary)

    @on(RiderAssigned)
    def on_rider_assigned(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.rider_id = event.rider_id
        summary.rider_name = event.rider_name
        repo.add(summary)
