"""Shared BDD fixtures and step definitions for checkout and the order lifecycle."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from marketplace.errors import InvalidTransition
from marketplace.order import service
from marketplace.order.audit import OrderEvent
from marketplace.order.order import Order
from marketplace.shared.actor import Actor, ActorRole

STORE_OWNER = Actor(actor_id="owner-001", role=ActorRole.VENDOR)


@pytest.fixture()
def world():
    """Records created by Given steps, keyed by role in the scenario."""
    return {"variants": {}}


@pytest.fixture()
def error():
    """Container for the exception a "tries to" step captured."""
    return {"exc": None}


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a placed order for customer "{customer_id}"'), target_fixture="order_id")
def _(place_order, customer_id):
    return place_order(customer_id=customer_id).order_id


@given("the order is ready for pickup")
def _(order_id):
    service.confirm(order_id, STORE_OWNER)
    service.start_preparing(order_id, STORE_OWNER)
    service.mark_ready(order_id, STORE_OWNER)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert _order(order_id).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(order_id, status):
    assert _order(order_id).payment_status == status


@then(parsers.cfparse('the timeline reads "{statuses}"'))
def _(order_id, statuses):
    timeline = current_domain.repository_for(OrderEvent).timeline(order_id)
    assert ", ".join(event.to_status for event in timeline) == statuses


@then(parsers.cfparse('the transition is rejected from "{from_status}" to "{to_status}"'))
def _(error, from_status, to_status):
    assert isinstance(error["exc"], InvalidTransition)
    assert (error["exc"].from_status, error["exc"].to_status) == (from_status, to_status)
