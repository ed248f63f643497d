"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer): separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class ValidateCheckoutRequest(BaseModel):
    cart_id: str
    customer_id: str
    fulfillment_type: str = "delivery"
    delivery_address_id: str | None = None
    is_express: bool = False
    promo_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "cart_id": "cart-001",
                    "customer_id": "cust-001",
                    "fulfillment_type": "delivery",
                    "delivery_address_id": "addr-001",
                    "promo_code": "WELCOME10",
                }
            ]
        }
    }


class CompleteCheckoutRequest(ValidateCheckoutRequest):
    payment_method: str = "cash_on_delivery"
    payment_reference: str | None = None
    notes: str | None = Field(default=None, max_length=1000)


class PricedLineSchema(BaseModel):
    variant_id: str
    product_id: str
    title: str
    quantity: int
    unit_price: int
    subtotal: int


class CheckoutSummarySchema(BaseModel):
    items: list[PricedLineSchema]
    item_count: int
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


class CheckoutValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]
    summary: CheckoutSummarySchema | None = None


class CheckoutCompleteResponse(BaseModel):
    order_id: str
    display_id: int
    total: int
    discount_total: int
    delivery_total: int
    currency: str
    payment_status: str
    warnings: list[str]
    message: str


# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------
class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class ConfirmOrderRequest(BaseModel):
    estimated_prep_time: int | None = Field(default=None, ge=1)


class DispatchOrderRequest(BaseModel):
    rider_id: str
    rider_name: str
    rider_phone: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class RefundOrderRequest(BaseModel):
    reason: str | None = None


class TransitionResponse(BaseModel):
    order_id: str
    display_id: int
    from_status: str
    to_status: str
    reason: str | None = None


class ReorderRequest(BaseModel):
    customer_id: str


class ReorderResponse(BaseModel):
    cart_id: str
    added_count: int
    unavailable_items: list[str]
    message: str


# ---------------------------------------------------------------------------
# Delivery quotes
# ---------------------------------------------------------------------------
class DeliveryQuoteRequest(BaseModel):
    vendor_id: str
    delivery_address_id: str
    order_subtotal: int = Field(ge=0)
    is_express: bool = False


class DeliveryQuoteResponse(BaseModel):
    available: bool
    reason: str | None = None
    distance_km: float | None = None
    fare: dict | None = None
    estimate: dict | None = None
    store_name: str | None = None
    store_address: str | None = None
    delivery_address: str | None = None
    valid_until: datetime | None = None
