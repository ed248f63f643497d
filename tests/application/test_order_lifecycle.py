"""Order lifecycle service: guarded transitions, audit events and notifications."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.errors import InvalidTransition, NotFound, OwnershipMismatch
from marketplace.order import service
from marketplace.order.audit import OrderEvent
from marketplace.order.order import Order
from marketplace.shared.actor import Actor, ActorRole

VENDOR = Actor(actor_id="owner-001", role=ActorRole.VENDOR)
RIDER = Actor(actor_id="rider-001", role=ActorRole.RIDER)
ADMIN = Actor(actor_id="admin-001", role=ActorRole.ADMIN)
CUSTOMER = Actor(actor_id="cust-001", role=ActorRole.CUSTOMER)
STRANGER = Actor(actor_id="cust-999", role=ActorRole.CUSTOMER)


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _timeline(order_id):
    return current_domain.repository_for(OrderEvent).timeline(order_id)


def _to_ready(order_id):
    service.confirm(order_id, VENDOR)
    service.start_preparing(order_id, VENDOR)
    service.mark_ready(order_id, VENDOR)


@pytest.fixture()
def order_id(place_order):
    return place_order().order_id


class TestHappyPath:
    def test_full_delivery_lifecycle(self, order_id):
        _to_ready(order_id)
        service.assign_rider_and_dispatch(order_id, VENDOR, "rider-001", "Okello", "+256700000001")
        service.mark_delivered(order_id, RIDER)
        service.complete(order_id, VENDOR)

        order = _order(order_id)
        assert order.status == "completed"
        assert order.fulfillment_status == "fulfilled"
        assert order.payment_status == "captured"

        steps = [(e.event_type, e.from_status, e.to_status) for e in _timeline(order_id)]
        assert steps == [
            ("created", None, "pending"),
            ("status_change", "pending", "confirmed"),
            ("status_change", "confirmed", "preparing"),
            ("status_change", "preparing", "ready_for_pickup"),
            ("status_change", "ready_for_pickup", "out_for_delivery"),
            ("status_change", "out_for_delivery", "delivered"),
            ("status_change", "delivered", "completed"),
        ]
        assert [e.sequence for e in _timeline(order_id)] == list(range(1, 8))

    def test_pickup_order_skips_dispatch(self, order_id):
        _to_ready(order_id)
        result = service.mark_delivered(order_id, VENDOR)
        assert (result["from_status"], result["to_status"]) == ("ready_for_pickup", "delivered")

    def test_events_carry_actor_and_totals(self, order_id):
        service.confirm(order_id, VENDOR, estimated_prep_time=25)
        confirmed = _timeline(order_id)[-1]

        assert confirmed.actor_id == "owner-001"
        assert confirmed.reason == "Estimated preparation time: 25 minutes"
        assert confirmed.snapshot_total == _order(order_id).total

    def test_dispatch_records_rider(self, order_id):
        _to_ready(order_id)
        service.assign_rider_and_dispatch(order_id, VENDOR, "rider-001", "Okello", "+256700000001")

        order = _order(order_id)
        assert (order.rider_id, order.rider_name, order.rider_phone) == ("rider-001", "Okello", "+256700000001")
        assert _timeline(order_id)[-1].reason == "Rider assigned: Okello"

    def test_generic_status_update(self, order_id):
        result = service.update_status(order_id, "confirmed", VENDOR)
        assert result["to_status"] == "confirmed"
        assert _order(order_id).status == "confirmed"


class TestInvalidTransitions:
    def test_skipping_ahead_is_rejected(self, order_id):
        with pytest.raises(InvalidTransition) as exc:
            service.mark_ready(order_id, VENDOR)

        assert exc.value.messages == {"status": ["Cannot transition from pending to ready_for_pickup"]}
        assert _order(order_id).status == "pending"
        assert len(_timeline(order_id)) == 1

    def test_completed_only_after_delivery(self, order_id):
        _to_ready(order_id)
        with pytest.raises(InvalidTransition):
            service.complete(order_id, VENDOR)

    def test_pending_cannot_be_re_entered(self, order_id):
        service.confirm(order_id, VENDOR)
        with pytest.raises(InvalidTransition):
            service.update_status(order_id, "pending", VENDOR)

    def test_self_transition_is_rejected(self, order_id):
        with pytest.raises(InvalidTransition):
            service.update_status(order_id, "pending", VENDOR)

    def test_unknown_status(self, order_id):
        with pytest.raises(ValidationError) as exc:
            service.update_status(order_id, "teleported", VENDOR)
        assert exc.value.messages == {"status": ["Unknown order status: teleported"]}

    def test_no_notification_for_rejected_transition(self, order_id, fake_push):
        with pytest.raises(InvalidTransition):
            service.complete(order_id, VENDOR)
        assert fake_push.sent_to("cust-001") == []


class TestCancellation:
    def test_customer_cancels_own_order(self, order_id):
        result = service.cancel(order_id, CUSTOMER, "Ordered by mistake")

        order = _order(order_id)
        assert order.status == "cancelled"
        assert order.payment_status == "canceled"
        assert result["reason"] == "Ordered by mistake"
        assert _timeline(order_id)[-1].reason == "Ordered by mistake"

    def test_reason_is_required(self, order_id):
        with pytest.raises(ValidationError) as exc:
            service.cancel(order_id, CUSTOMER, "   ")
        assert exc.value.messages == {"reason": ["Cancellation reason is required"]}
        assert _order(order_id).status == "pending"

    def test_generic_update_to_cancelled_requires_reason(self, order_id):
        with pytest.raises(ValidationError):
            service.update_status(order_id, "cancelled", VENDOR)

    def test_customer_cannot_cancel_once_ready(self, order_id):
        _to_ready(order_id)
        with pytest.raises(InvalidTransition):
            service.cancel(order_id, CUSTOMER, "Too slow")
        assert _order(order_id).status == "ready_for_pickup"

    def test_vendor_can_cancel_once_ready(self, order_id):
        _to_ready(order_id)
        service.cancel(order_id, VENDOR, "Out of stock")
        assert _order(order_id).status == "cancelled"

    def test_cancelled_is_terminal(self, order_id):
        service.cancel(order_id, CUSTOMER, "Changed my mind")
        with pytest.raises(InvalidTransition):
            service.confirm(order_id, VENDOR)


class TestRefunds:
    def test_refund_after_delivery(self, order_id):
        _to_ready(order_id)
        service.mark_delivered(order_id, VENDOR)
        service.refund(order_id, ADMIN, reason="Food arrived cold")

        order = _order(order_id)
        assert order.status == "refunded"
        assert order.payment_status == "refunded"
        assert _timeline(order_id)[-1].reason == "Food arrived cold"

    def test_refund_before_delivery_is_rejected(self, order_id):
        with pytest.raises(InvalidTransition):
            service.refund(order_id, ADMIN)


class TestOwnership:
    def test_stranger_cannot_cancel(self, order_id):
        with pytest.raises(OwnershipMismatch):
            service.cancel(order_id, STRANGER, "Not mine")
        assert _order(order_id).status == "pending"

    def test_missing_order(self):
        with pytest.raises(NotFound):
            service.confirm("no-such-order", VENDOR)


class TestNotifications:
    def test_each_transition_notifies_customer_once(self, order_id, fake_push):
        service.confirm(order_id, VENDOR)
        service.start_preparing(order_id, VENDOR)

        pushes = fake_push.sent_to("cust-001")
        assert [p["data"]["status"] for p in pushes] == ["confirmed", "preparing"]

    def test_prep_time_is_included_in_confirmation(self, order_id, fake_push):
        service.confirm(order_id, VENDOR, estimated_prep_time=20)

        push = fake_push.sent_to("cust-001")[0]
        display_id = _order(order_id).display_id
        assert push["body"] == f"Order #{display_id} has been confirmed. Estimated preparation time: 20 minutes"

    def test_dispatch_notifies_rider_with_route(self, order_id, fake_push, checkout_ready):
        _to_ready(order_id)
        service.assign_rider_and_dispatch(order_id, VENDOR, "rider-001", "Okello")

        pushes = fake_push.sent_to("rider-001")
        assert len(pushes) == 1
        assert "Pickup: Kampala Road" in pushes[0]["body"]
        assert pushes[0]["data"]["delivery_address"] == "Bukoto Street"
        assert [p["data"]["status"] for p in fake_push.sent_to("cust-001")][-1] == "out_for_delivery"

    def test_channel_failure_does_not_undo_transition(self, order_id, fake_push):
        fake_push.configure(raise_on_send=True)
        service.confirm(order_id, VENDOR)
        assert _order(order_id).status == "confirmed"
