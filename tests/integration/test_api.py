"""Integration tests for the marketplace HTTP API via TestClient."""

from datetime import UTC, datetime

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from marketplace.api.errors import register_exception_handlers
from marketplace.api.routes import checkout_router, customer_router, delivery_router, order_router, vendor_router
from marketplace.domain import marketplace
from marketplace.ratelimit import set_limiter
from marketplace.ratelimit.port import BucketConfig
from marketplace.ratelimit.token_bucket import TokenBucketRateLimiter

VENDOR_HEADERS = {"X-Actor-Id": "owner-001", "X-Actor-Role": "vendor"}
CUSTOMER_HEADERS = {"X-Actor-Id": "cust-001", "X-Actor-Role": "customer"}


@pytest.fixture()
def client():
    app = FastAPI()

    @app.middleware("http")
    async def domain_context(request: Request, call_next):
        with marketplace.domain_context():
            return await call_next(request)

    for router in (checkout_router, order_router, customer_router, vendor_router, delivery_router):
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


def _checkout_body(checkout_ready, **overrides):
    body = {
        "cart_id": checkout_ready["cart"].id,
        "customer_id": "cust-001",
        "delivery_address_id": checkout_ready["address"].id,
    }
    body.update(overrides)
    return body


def _place(client, checkout_ready, **overrides):
    response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, **overrides))
    assert response.status_code == 201
    return response.json()


class TestCheckoutApi:
    def test_validate(self, client, checkout_ready):
        response = client.post("/checkout/validate", json=_checkout_body(checkout_ready))

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["summary"]["subtotal"] == 19000
        assert data["summary"]["item_count"] == 2

    def test_validate_reports_problems_with_200(self, client, checkout_ready):
        response = client.post("/checkout/validate", json=_checkout_body(checkout_ready, delivery_address_id=None))
        assert response.status_code == 200
        assert response.json()["errors"] == ["Delivery address is required for delivery orders"]

    def test_complete(self, client, checkout_ready):
        data = _place(client, checkout_ready, notes="Ring the bell")

        assert data["display_id"] == 1000
        assert data["payment_status"] == "awaiting"
        assert data["message"] == "Order #1000 placed successfully"

    def test_missing_cart_is_404(self, client, checkout_ready):
        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, cart_id="nope"))
        assert response.status_code == 404
        assert response.json() == {"error": {"cart_id": ["Cart not found"]}, "code": "not_found"}

    def test_expired_cart_is_404(self, client, seed, checkout_ready):
        long_ago = datetime(2020, 1, 1, tzinfo=UTC)
        stale = seed.cart("cust-001", checkout_ready["vendor"], [(checkout_ready["rolex"], 1)], now=long_ago)
        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, cart_id=stale.id))
        assert response.status_code == 404
        assert response.json() == {
            "error": {"cart_id": ["Cart has expired. Please add items again."]},
            "code": "expired",
        }

    def test_foreign_cart_is_403(self, client, checkout_ready):
        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, customer_id="cust-999"))
        assert response.status_code == 403
        assert response.json() == {
            "error": {"cart_id": ["Cart does not belong to this customer"]},
            "code": "ownership_mismatch",
        }

    def test_busy_store_is_409(self, client, checkout_ready):
        from protean import current_domain

        from marketplace.vendors.vendor import Vendor

        vendor = checkout_ready["vendor"]
        vendor.mark_busy()
        current_domain.repository_for(Vendor).add(vendor)

        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready))
        assert response.status_code == 409
        assert response.json()["code"] == "store_unavailable"

    def test_out_of_zone_is_400(self, client, seed, checkout_ready, places):
        far = seed.address("cust-001", lat=places.far[0], lng=places.far[1])
        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, delivery_address_id=far.id))
        assert response.status_code == 400
        assert response.json()["code"] == "out_of_zone"

    def test_rate_limited_is_429_with_retry_after(self, client, seed, checkout_ready):
        set_limiter(TokenBucketRateLimiter({"create_order": BucketConfig(rate=1, period=60.0, capacity=1)}))
        _place(client, checkout_ready)

        cart = seed.cart("cust-001", checkout_ready["vendor"], [(checkout_ready["rolex"], 4)])
        response = client.post("/checkout/complete", json=_checkout_body(checkout_ready, cart_id=cart.id))

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["retry_after"] == int(response.headers["Retry-After"])
        assert response.json()["error"] == {"_entity": ["Too many orders. Please wait before trying again."]}
        assert response.json()["code"] == "rate_limited"


class TestOrderApi:
    def test_confirm_and_track(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]

        response = client.post(f"/orders/{order_id}/confirm", json={"estimated_prep_time": 15}, headers=VENDOR_HEADERS)
        assert response.status_code == 200
        assert response.json()["to_status"] == "confirmed"

        tracking = client.get(f"/orders/{order_id}/tracking", headers=CUSTOMER_HEADERS).json()
        assert list(tracking["status_history"]) == ["pending", "confirmed"]

    def test_full_lifecycle(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]

        client.post(f"/orders/{order_id}/confirm", json={}, headers=VENDOR_HEADERS)
        client.post(f"/orders/{order_id}/start-preparing", headers=VENDOR_HEADERS)
        client.post(f"/orders/{order_id}/mark-ready", headers=VENDOR_HEADERS)
        client.post(
            f"/orders/{order_id}/dispatch",
            json={"rider_id": "rider-001", "rider_name": "Okello"},
            headers=VENDOR_HEADERS,
        )
        client.post(f"/orders/{order_id}/deliver", headers={"X-Actor-Id": "rider-001"})
        response = client.post(f"/orders/{order_id}/complete", headers={"X-Actor-Id": "system"})

        assert response.status_code == 200
        detail = client.get(f"/orders/{order_id}", headers=CUSTOMER_HEADERS).json()
        assert detail["status"] == "completed"
        assert len(detail["timeline"]) == 7

    def test_invalid_transition_is_409(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.post(f"/orders/{order_id}/mark-ready", headers=VENDOR_HEADERS)

        assert response.status_code == 409
        assert response.json() == {
            "error": {"status": ["Cannot transition from pending to ready_for_pickup"]},
            "code": "invalid_transition",
        }

    def test_generic_status_update(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.post(f"/orders/{order_id}/status", json={"status": "confirmed"}, headers=VENDOR_HEADERS)
        assert response.status_code == 200
        assert response.json()["from_status"] == "pending"

    def test_cancel_requires_reason(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.post(f"/orders/{order_id}/cancel", json={"reason": ""}, headers=CUSTOMER_HEADERS)
        assert response.status_code == 422

    def test_customer_cancel(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Changed my mind"}, headers=CUSTOMER_HEADERS)
        assert response.status_code == 200
        assert response.json()["to_status"] == "cancelled"

    def test_other_customers_order_is_403(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.get(f"/orders/{order_id}", headers={"X-Actor-Id": "cust-999"})
        assert response.status_code == 403

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/no-such-order", headers=CUSTOMER_HEADERS)
        assert response.status_code == 404

    def test_by_display_id(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.get("/orders/by-display-id/1000", headers=CUSTOMER_HEADERS)
        assert response.json()["id"] == order_id

    def test_reorder(self, client, checkout_ready):
        order_id = _place(client, checkout_ready)["order_id"]
        response = client.post(f"/orders/{order_id}/reorder", json={"customer_id": "cust-001"})
        assert response.status_code == 200
        assert response.json()["added_count"] == 2


class TestListingApi:
    def test_customer_orders(self, client, checkout_ready):
        _place(client, checkout_ready)
        data = client.get("/customers/cust-001/orders").json()
        assert data["total"] == 1
        assert data["has_more"] is False

    def test_vendor_summary(self, client, checkout_ready):
        _place(client, checkout_ready)
        summary = client.get(f"/vendors/{checkout_ready['vendor'].id}/orders/summary").json()
        assert summary["pending"] == 1
        assert summary["pending_count"] == 1


class TestDeliveryApi:
    def test_delivery_quote(self, client, checkout_ready):
        response = client.post(
            "/delivery-quotes",
            json={
                "vendor_id": checkout_ready["vendor"].id,
                "delivery_address_id": checkout_ready["address"].id,
                "order_subtotal": 19000,
            },
        )
        assert response.status_code == 200
        assert response.json()["available"] is True

    def test_nearby_stores(self, client, checkout_ready, places):
        lat, lng = places.store
        stores = client.get("/stores/nearby", params={"lat": lat, "lng": lng}).json()
        assert [s["id"] for s in stores] == [checkout_ready["vendor"].id]
