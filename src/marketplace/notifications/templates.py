"""Push message templates, keyed by template name.

Each template renders ``{"title", "body", "data"}`` from a payload dict.
"""

from marketplace.shared.money import DEFAULT_CURRENCY, format_amount

ORDER_STATUS = "order_status"
NEW_ORDER = "new_order"
DELIVERY_ASSIGNED = "delivery_assigned"

_STATUS_TITLES = {
    "confirmed": "Order Confirmed! 🎉",
    "preparing": "Your order is being prepared 👨‍🍳",
    "ready_for_pickup": "Order Ready for Pickup 📦",
    "out_for_delivery": "Your order is on the way! 🚀",
    "delivered": "Order Delivered! ✅",
    "completed": "Order Completed",
    "cancelled": "Order Cancelled",
    "refunded": "Order Refunded",
}

_STATUS_BODIES = {
    "confirmed": "Order #{display_id} has been confirmed",
    "preparing": "Order #{display_id} is being prepared",
    "ready_for_pickup": "Order #{display_id} is ready for pickup",
    "out_for_delivery": "Order #{display_id} is on its way to you",
    "delivered": "Order #{display_id} has been delivered",
    "completed": "Order #{display_id} is complete. Thank you!",
    "cancelled": "Order #{display_id} has been cancelled",
    "refunded": "Order #{display_id} has been refunded",
}


def render_order_status(payload: dict) -> dict:
    display_id = payload.get("display_id", "N/A")
    status = payload.get("status", "")
    title = _STATUS_TITLES.get(status, "Order Update")
    body = payload.get("message") or _STATUS_BODIES.get(status, "Order #{display_id} status: " + status).format(
        display_id=display_id
    )
    return {
        "title": title,
        "body": body,
        "data": {
            "type": ORDER_STATUS,
            "order_id": payload.get("order_id"),
            "display_id": str(display_id),
            "status": status,
        },
    }


def render_new_order(payload: dict) -> dict:
    display_id = payload.get("display_id", "N/A")
    item_count = payload.get("item_count", 0)
    total = format_amount(payload.get("total", 0), payload.get("currency", DEFAULT_CURRENCY))
    return {
        "title": "New Order! 🛒",
        "body": f"Order #{display_id} - {item_count} item(s) - {total}",
        "data": {"type": NEW_ORDER, "order_id": payload.get("order_id"), "display_id": str(display_id)},
    }


def render_delivery_assigned(payload: dict) -> dict:
    display_id = payload.get("display_id", "N/A")
    body = f"Order #{display_id}\nPickup: {payload.get('pickup_address') or 'Store'}"
    if payload.get("estimated_fare"):
        fare = format_amount(payload["estimated_fare"], payload.get("currency", DEFAULT_CURRENCY))
        body += f"\nEarnings: {fare}"
    return {
        "title": "New Delivery Assigned! 📍",
        "body": body,
        "data": {
            "type": DELIVERY_ASSIGNED,
            "order_id": payload.get("order_id"),
            "display_id": str(display_id),
            "delivery_address": payload.get("delivery_address") or "Customer",
        },
    }


TEMPLATE_REGISTRY = {
    ORDER_STATUS: render_order_status,
    NEW_ORDER: render_new_order,
    DELIVERY_ASSIGNED: render_delivery_assigned,
}


def render(template: str, payload: dict) -> dict:
    renderer = TEMPLATE_REGISTRY.get(template)
    if renderer is None:
        raise ValueError(f"No template registered for: {template}")
    return renderer(payload)
