"""Tests for push message rendering."""

import pytest

from marketplace.notifications.templates import DELIVERY_ASSIGNED, NEW_ORDER, ORDER_STATUS, render


class TestTemplates:
    def test_order_status(self):
        message = render(ORDER_STATUS, {"order_id": "o-1", "display_id": 1000, "status": "confirmed"})
        assert message["title"].startswith("Order Confirmed")
        assert message["body"] == "Order #1000 has been confirmed"
        assert message["data"] == {"type": "order_status", "order_id": "o-1", "display_id": "1000", "status": "confirmed"}

    def test_order_status_custom_message(self):
        message = render(ORDER_STATUS, {"display_id": 1000, "status": "confirmed", "message": "Ready in 20 minutes"})
        assert message["body"] == "Ready in 20 minutes"

    def test_unknown_status_falls_back(self):
        message = render(ORDER_STATUS, {"display_id": 7, "status": "weird"})
        assert message["title"] == "Order Update"
        assert message["body"] == "Order #7 status: weird"

    def test_new_order(self):
        message = render(NEW_ORDER, {"order_id": "o-1", "display_id": 1000, "item_count": 5, "total": 22000})
        assert message["body"] == "Order #1000 - 5 item(s) - UGX 22,000"

    def test_delivery_assigned(self):
        message = render(
            DELIVERY_ASSIGNED,
            {"display_id": 1000, "pickup_address": "Kampala Road", "delivery_address": "Bukoto", "estimated_fare": 3000},
        )
        assert message["body"] == "Order #1000\nPickup: Kampala Road\nEarnings: UGX 3,000"
        assert message["data"]["delivery_address"] == "Bukoto"

    def test_unknown_template(self):
        with pytest.raises(ValueError):
            render("nope", {})

