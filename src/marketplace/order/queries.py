"""Read-side order queries: detail, listings, tracking and vendor dashboards.

Detail and tracking read the Order aggregate and its audit trail. Listings
and dashboard counters are filtered queries over the order summary projection,
kept up to date from Order events.
"""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import NotFound, OwnershipMismatch
from marketplace.order.audit import OrderEvent
from marketplace.order.order import ACTIVE_STATES, Order, OrderStatus
from marketplace.projections.order_summary import OrderSummary
from marketplace.shared.actor import Actor
from marketplace.shared.clock import local_date, utcnow

PAGE_SIZE = 20

DASHBOARD_BUCKETS = {
    "pending": [OrderStatus.PENDING],
    "in_progress": [
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.OUT_FOR_DELIVERY,
    ],
    "completed": [OrderStatus.DELIVERED, OrderStatus.COMPLETED],
    "cancelled": [OrderStatus.CANCELLED],
}


def item_to_dict(item) -> dict:
    return {
        "id": str(item.id),
        "product_id": str(item.product_id),
        "variant_id": str(item.variant_id),
        "title": item.title,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "subtotal": item.subtotal,
    }


def event_to_dict(event: OrderEvent) -> dict:
    return {
        "sequence": event.sequence,
        "event_type": event.event_type,
        "from_status": event.from_status,
        "to_status": event.to_status,
        "actor_id": str(event.actor_id),
        "reason": event.reason,
        "total": event.snapshot_total,
        "tax_total": event.snapshot_tax_total,
        "discount_total": event.snapshot_discount_total,
        "delivery_total": event.snapshot_delivery_total,
        "created_at": event.created_at,
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": str(order.id),
        "display_id": order.display_id,
        "status": order.status,
        "fulfillment_status": order.fulfillment_status,
        "payment_status": order.payment_status,
        "fulfillment_type": order.fulfillment_type,
        "payment_method": order.payment_method,
        "customer_id": str(order.customer_id),
        "vendor_id": str(order.vendor_id),
        "delivery_address_id": str(order.delivery_address_id) if order.delivery_address_id else None,
        "currency": order.currency,
        "subtotal": order.subtotal,
        "total": order.total,
        "tax_total": order.tax_total,
        "discount_total": order.discount_total,
        "delivery_total": order.delivery_total,
        "rider_id": str(order.rider_id) if order.rider_id else None,
        "rider_name": order.rider_name,
        "rider_phone": order.rider_phone,
        "notes": order.notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "item_count": len(order.items),
        "items": [item_to_dict(item) for item in order.items],
    }


def _load(order_id, actor: Actor | None = None) -> Order:
    try:
        order = current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFound({"order_id": ["Order not found"]}) from None
    if actor is not None and actor.is_customer and not actor.is_owner_of(order):
        raise OwnershipMismatch({"order_id": ["Order does not belong to this customer"]})
    return order


def get_order(order_id, actor: Actor | None = None) -> dict:
    """Order with its items and full audit timeline, oldest event first."""
    order = _load(order_id, actor)
    data = order_to_dict(order)
    data["timeline"] = [event_to_dict(e) for e in current_domain.repository_for(OrderEvent).timeline(order.id)]
    return data


def get_by_display_id(display_id: int, actor: Actor | None = None) -> dict:
    order = current_domain.repository_for(Order).by_display_id(display_id)
    if order is None:
        raise NotFound({"display_id": [f"Order #{display_id} not found"]})
    return get_order(order.id, actor)


def summary_to_dict(summary: OrderSummary) -> dict:
    return {
        "id": str(summary.order_id),
        "display_id": summary.display_id,
        "status": summary.status,
        "payment_status": summary.payment_status,
        "payment_method": summary.payment_method,
        "fulfillment_type": summary.fulfillment_type,
        "customer_id": str(summary.customer_id),
        "vendor_id": str(summary.vendor_id),
        "currency": summary.currency,
        "subtotal": summary.subtotal,
        "discount_total": summary.discount_total,
        "delivery_total": summary.delivery_total,
        "total": summary.total,
        "item_count": summary.item_count,
        "rider_id": str(summary.rider_id) if summary.rider_id else None,
        "rider_name": summary.rider_name,
        "created_at": summary.placed_at,
        "updated_at": summary.updated_at,
    }


def _summaries(**criteria):
    """Newest-first queryset over the order summary read model."""
    return current_domain.repository_for(OrderSummary)._dao.query.filter(**criteria).order_by("-display_id")


def _page(criteria: dict, status: str | None, limit: int, offset: int) -> dict:
    if status:
        criteria["status"] = status
    results = _summaries(**criteria).offset(offset).limit(limit).all()
    return {
        "orders": [summary_to_dict(s) for s in results.items],
        "has_more": results.has_next,
        "total": results.total,
    }


def list_by_customer(customer_id, status: str | None = None, limit: int = PAGE_SIZE, offset: int = 0) -> dict:
    return _page({"customer_id": str(customer_id)}, status, limit, offset)


def list_by_vendor(vendor_id, status: str | None = None, limit: int = PAGE_SIZE, offset: int = 0) -> dict:
    return _page({"vendor_id": str(vendor_id)}, status, limit, offset)


def get_active_orders(customer_id=None, vendor_id=None) -> list[dict]:
    """Orders that have not reached delivered or a terminal state, newest first."""
    if customer_id is not None:
        criteria = {"customer_id": str(customer_id)}
    elif vendor_id is not None:
        criteria = {"vendor_id": str(vendor_id)}
    else:
        raise ValueError("customer_id or vendor_id is required")

    criteria["status__in"] = [status.value for status in ACTIVE_STATES]
    return [summary_to_dict(s) for s in _summaries(**criteria).limit(None).all().items]


def get_tracking_info(order_id, actor: Actor | None = None) -> dict:
    """Current status, when each status was entered, and the assigned rider."""
    order = _load(order_id, actor)
    timeline = current_domain.repository_for(OrderEvent).timeline(order.id)

    entered = {}
    for event in timeline:
        if event.to_status:
            entered[event.to_status] = event.created_at

    rider = None
    if order.rider_id:
        rider = {"id": str(order.rider_id), "name": order.rider_name, "phone": order.rider_phone}

    return {
        "order_id": str(order.id),
        "display_id": order.display_id,
        "status": order.status,
        "fulfillment_type": order.fulfillment_type,
        "status_history": entered,
        "rider": rider,
    }


def get_pending_orders_count(vendor_id) -> int:
    return _summaries(vendor_id=str(vendor_id), status=OrderStatus.PENDING.value).all().total


def get_todays_summary(vendor_id, now: datetime | None = None) -> dict:
    """Counts per status bucket and revenue for orders placed today (marketplace local time)."""
    criteria = {"vendor_id": str(vendor_id), "placed_on": local_date(now or utcnow())}

    counts = {}
    for bucket, states in DASHBOARD_BUCKETS.items():
        counts[bucket] = _summaries(**criteria, status__in=[s.value for s in states]).all().total

    completed = _summaries(**criteria, status__in=[s.value for s in DASHBOARD_BUCKETS["completed"]])
    return {
        "total_orders": _summaries(**criteria).all().total,
        **counts,
        "revenue": sum(s.total or 0 for s in completed.limit(None).all().items),
    }
