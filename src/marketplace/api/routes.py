"""FastAPI routes for the Marketplace: checkout, orders and delivery quotes.

The acting identity is resolved upstream and forwarded in the ``X-Actor-Id``
and ``X-Actor-Role`` headers.
"""

from dataclasses import asdict

from fastapi import APIRouter, Header
from protean.exceptions import ValidationError

from marketplace.api.schemas import (
    CancelOrderRequest,
    CheckoutCompleteResponse,
    CheckoutValidationResponse,
    CompleteCheckoutRequest,
    ConfirmOrderRequest,
    DeliveryQuoteRequest,
    DeliveryQuoteResponse,
    DispatchOrderRequest,
    RefundOrderRequest,
    ReorderRequest,
    ReorderResponse,
    TransitionResponse,
    UpdateStatusRequest,
    ValidateCheckoutRequest,
)
from marketplace.checkout.service import complete_checkout, validate_checkout
from marketplace.delivery.quote import get_delivery_quote
from marketplace.order import queries
from marketplace.order import service as orders
from marketplace.order.reorder import reorder
from marketplace.riders.service import list_nearby_stages, list_online_riders
from marketplace.shared.actor import Actor, ActorRole
from marketplace.vendors.stores import find_nearest_stores


def _actor(actor_id: str, role: str) -> Actor:
    try:
        return Actor(actor_id=actor_id, role=ActorRole(role))
    except ValueError:
        raise ValidationError({"actor_role": [f"Unknown actor role: {role}"]}) from None


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/validate", response_model=CheckoutValidationResponse)
async def validate(body: ValidateCheckoutRequest) -> CheckoutValidationResponse:
    result = validate_checkout(
        cart_id=body.cart_id,
        customer_id=body.customer_id,
        fulfillment_type=body.fulfillment_type,
        delivery_address_id=body.delivery_address_id,
        is_express=body.is_express,
        promo_code=body.promo_code,
    )
    summary = None
    if result.summary is not None:
        summary = {**asdict(result.summary), "item_count": result.summary.item_count}
    return CheckoutValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        summary=summary,
    )


@checkout_router.post("/complete", status_code=201, response_model=CheckoutCompleteResponse)
async def complete(body: CompleteCheckoutRequest) -> CheckoutCompleteResponse:
    result = complete_checkout(
        cart_id=body.cart_id,
        customer_id=body.customer_id,
        payment_method=body.payment_method,
        fulfillment_type=body.fulfillment_type,
        delivery_address_id=body.delivery_address_id,
        payment_reference=body.payment_reference,
        notes=body.notes,
        is_express=body.is_express,
        promo_code=body.promo_code,
    )
    return CheckoutCompleteResponse(**asdict(result), message=result.message)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/by-display-id/{display_id}")
async def get_order_by_display_id(
    display_id: int,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="customer"),
) -> dict:
    return queries.get_by_display_id(display_id, _actor(x_actor_id, x_actor_role))


@order_router.get("/{order_id}")
async def get_order(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="customer"),
) -> dict:
    return queries.get_order(order_id, _actor(x_actor_id, x_actor_role))


@order_router.get("/{order_id}/tracking")
async def get_tracking(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="customer"),
) -> dict:
    return queries.get_tracking_info(order_id, _actor(x_actor_id, x_actor_role))


@order_router.post("/{order_id}/status", response_model=TransitionResponse)
async def update_status(
    order_id: str,
    body: UpdateStatusRequest,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="vendor"),
) -> TransitionResponse:
    result = orders.update_status(order_id, body.status, _actor(x_actor_id, x_actor_role), reason=body.reason)
    return TransitionResponse(**result)


@order_router.post("/{order_id}/confirm", response_model=TransitionResponse)
async def confirm_order(
    order_id: str,
    body: ConfirmOrderRequest,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="vendor"),
) -> TransitionResponse:
    result = orders.confirm(order_id, _actor(x_actor_id, x_actor_role), body.estimated_prep_time)
    return TransitionResponse(**result)


@order_router.post("/{order_id}/start-preparing", response_model=TransitionResponse)
async def start_preparing(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="vendor"),
) -> TransitionResponse:
    return TransitionResponse(**orders.start_preparing(order_id, _actor(x_actor_id, x_actor_role)))


@order_router.post("/{order_id}/mark-ready", response_model=TransitionResponse)
async def mark_ready(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="vendor"),
) -> TransitionResponse:
    return TransitionResponse(**orders.mark_ready(order_id, _actor(x_actor_id, x_actor_role)))


@order_router.post("/{order_id}/dispatch", response_model=TransitionResponse)
async def dispatch_order(
    order_id: str,
    body: DispatchOrderRequest,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="vendor"),
) -> TransitionResponse:
    result = orders.assign_rider_and_dispatch(
        order_id,
        _actor(x_actor_id, x_actor_role),
        rider_id=body.rider_id,
        rider_name=body.rider_name,
        rider_phone=body.rider_phone,
    )
    return TransitionResponse(**result)


@order_router.post("/{order_id}/deliver", response_model=TransitionResponse)
async def deliver_order(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="rider"),
) -> TransitionResponse:
    return TransitionResponse(**orders.mark_delivered(order_id, _actor(x_actor_id, x_actor_role)))


@order_router.post("/{order_id}/complete", response_model=TransitionResponse)
async def complete_order(
    order_id: str,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="system"),
) -> TransitionResponse:
    return TransitionResponse(**orders.complete(order_id, _actor(x_actor_id, x_actor_role)))


@order_router.post("/{order_id}/refund", response_model=TransitionResponse)
async def refund_order(
    order_id: str,
    body: RefundOrderRequest,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="admin"),
) -> TransitionResponse:
    return TransitionResponse(**orders.refund(order_id, _actor(x_actor_id, x_actor_role), body.reason))


@order_router.post("/{order_id}/cancel", response_model=TransitionResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    x_actor_id: str = Header(),
    x_actor_role: str = Header(default="customer"),
) -> TransitionResponse:
    return TransitionResponse(**orders.cancel(order_id, _actor(x_actor_id, x_actor_role), body.reason))


@order_router.post("/{order_id}/reorder", response_model=ReorderResponse)
async def reorder_order(order_id: str, body: ReorderRequest) -> ReorderResponse:
    return ReorderResponse(**reorder(order_id, body.customer_id))


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
customer_router = APIRouter(prefix="/customers", tags=["orders"])
vendor_router = APIRouter(prefix="/vendors", tags=["orders"])


@customer_router.get("/{customer_id}/orders")
async def list_customer_orders(customer_id: str, status: str | None = None, limit: int = 20, offset: int = 0) -> dict:
    return queries.list_by_customer(customer_id, status=status, limit=limit, offset=offset)


@customer_router.get("/{customer_id}/orders/active")
async def list_customer_active_orders(customer_id: str) -> list[dict]:
    return queries.get_active_orders(customer_id=customer_id)


@vendor_router.get("/{vendor_id}/orders")
async def list_vendor_orders(vendor_id: str, status: str | None = None, limit: int = 20, offset: int = 0) -> dict:
    return queries.list_by_vendor(vendor_id, status=status, limit=limit, offset=offset)


@vendor_router.get("/{vendor_id}/orders/summary")
async def vendor_todays_summary(vendor_id: str) -> dict:
    summary = queries.get_todays_summary(vendor_id)
    summary["pending_count"] = queries.get_pending_orders_count(vendor_id)
    return summary


# ---------------------------------------------------------------------------
# Delivery & proximity
# ---------------------------------------------------------------------------
delivery_router = APIRouter(tags=["delivery"])


@delivery_router.post("/delivery-quotes", response_model=DeliveryQuoteResponse)
async def delivery_quote(body: DeliveryQuoteRequest) -> DeliveryQuoteResponse:
    quote = get_delivery_quote(
        body.vendor_id,
        body.delivery_address_id,
        order_subtotal=body.order_subtotal,
        is_express=body.is_express,
    )
    return DeliveryQuoteResponse(
        available=quote.available,
        reason=quote.reason,
        distance_km=quote.distance_km,
        fare=quote.fare.to_dict() if quote.fare else None,
        estimate=asdict(quote.estimate) if quote.estimate else None,
        store_name=quote.store_name,
        store_address=quote.store_address,
        delivery_address=quote.delivery_address,
        valid_until=quote.valid_until,
    )


@delivery_router.get("/stores/nearby")
async def nearby_stores(lat: float, lng: float, radius_km: float = 10.0) -> list[dict]:
    return find_nearest_stores(lat, lng, radius_km=radius_km)


@delivery_router.get("/stages/nearby")
async def nearby_stages(lat: float, lng: float, radius_km: float = 10.0) -> list[dict]:
    return list_nearby_stages(lat, lng, radius_km=radius_km)


@delivery_router.get("/riders/online")
async def online_riders(lat: float | None = None, lng: float | None = None) -> list[dict]:
    return list_online_riders(lat, lng)
