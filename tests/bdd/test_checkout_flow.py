"""BDD tests for validating and completing a checkout."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from marketplace.cart.cart import Cart
from marketplace.checkout.service import complete_checkout, validate_checkout
from marketplace.errors import NotFound
from marketplace.order.order import Order
from marketplace.promotions.promotion import Promotion
from marketplace.vendors.vendor import Vendor

scenarios("features/checkout.feature")


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _checkout_args(world, customer_id=None) -> dict:
    return {
        "cart_id": world["cart"].id,
        "customer_id": customer_id or world["customer_id"],
        "delivery_address_id": world["address"].id,
    }


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a store "{name}" in central Kampala'))
def _(seed, world, name):
    world["vendor"] = seed.vendor(name=name)


@given(parsers.cfparse('the store sells "{name}" by the "{unit}" at {price:d}'))
def _(seed, world, name, unit, price):
    world["variants"][name] = seed.variant(world["vendor"], name=name, unit=unit, price=price)


@given(parsers.cfparse('customer "{customer_id}" has a delivery address about 4km away'))
def _(seed, world, customer_id):
    world["address"] = seed.address(customer_id)


@given(parsers.cfparse('customer "{customer_id}" has a delivery address in Entebbe'))
def _(seed, world, places, customer_id):
    world["address"] = seed.address(customer_id, lat=places.far[0], lng=places.far[1])


@given(parsers.cfparse('customer "{customer_id}" has a cart with {first:d} "{first_name}" and {second:d} "{second_name}"'))
def _(seed, world, customer_id, first, first_name, second, second_name):
    variants = world["variants"]
    world["customer_id"] = customer_id
    world["cart"] = seed.cart(
        customer_id,
        world["vendor"],
        [(variants[first_name], first), (variants[second_name], second)],
    )


@given(parsers.cfparse('an active promotion "{code}" worth {value:d} percent'))
def _(seed, world, code, value):
    world["promotion"] = seed.promotion(code=code, method_type="percentage", value=value)


@given("the store is busy")
def _(world):
    vendor = world["vendor"]
    vendor.mark_busy()
    current_domain.repository_for(Vendor).add(vendor)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer validates the checkout", target_fixture="validation")
def _(world, off_peak):
    return validate_checkout(**_checkout_args(world), now=off_peak)


@when(parsers.cfparse('the customer validates the checkout with promo code "{code}"'), target_fixture="validation")
def _(world, off_peak, code):
    return validate_checkout(**_checkout_args(world), promo_code=code, now=off_peak)


@when("the customer completes the checkout paying cash on delivery", target_fixture="order_id")
def _(world, off_peak):
    result = complete_checkout(**_checkout_args(world), payment_method="cash_on_delivery", now=off_peak)
    world["result"] = result
    return result.order_id


@when(parsers.cfparse('the customer completes the checkout with promo code "{code}"'), target_fixture="order_id")
def _(world, off_peak, code):
    result = complete_checkout(
        **_checkout_args(world), payment_method="cash_on_delivery", promo_code=code, now=off_peak
    )
    world["result"] = result
    return result.order_id


@when("the customer tries to complete the checkout")
def _(world, error, off_peak):
    try:
        complete_checkout(**_checkout_args(world), payment_method="cash_on_delivery", now=off_peak)
    except (NotFound, ValidationError) as exc:
        error["exc"] = exc


@when(parsers.cfparse('customer "{customer_id}" tries to complete the checkout'))
def _(world, error, off_peak, customer_id):
    try:
        complete_checkout(**_checkout_args(world, customer_id), payment_method="cash_on_delivery", now=off_peak)
    except (NotFound, ValidationError) as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the checkout is valid")
def _(validation):
    assert validation.valid is True
    assert validation.errors == []


@then(parsers.cfparse("the checkout subtotal is {subtotal:d}"))
def _(validation, subtotal):
    assert validation.summary.subtotal == subtotal


@then(parsers.cfparse("the checkout lists {count:d} items"))
def _(validation, count):
    assert validation.summary.item_count == count


@then(parsers.cfparse("the checkout warns '{warning}'"))
def _(validation, warning):
    assert warning in validation.warnings


@then(parsers.cfparse("an order is placed with display id {display_id:d}"))
def _(world, order_id, display_id):
    assert world["result"].display_id == display_id
    assert _order(order_id).display_id == display_id


@then("the order total includes the delivery fee")
def _(order_id):
    order = _order(order_id)
    assert order.delivery_total > 0
    assert order.total == order.subtotal + order.delivery_total


@then("the cart no longer exists")
def _(world):
    with pytest.raises(ObjectNotFoundError):
        current_domain.repository_for(Cart).get(world["cart"].id)


@then("the store owner receives a new order notification")
def _(world, fake_push):
    pushes = fake_push.sent_to(world["vendor"].owner_id)
    assert [push["data"]["type"] for push in pushes] == ["new_order"]


@then(parsers.cfparse("the order discount is {discount:d}"))
def _(order_id, discount):
    assert _order(order_id).discount_total == discount


@then(parsers.cfparse("the promotion has been used {count:d} time"))
def _(world, count):
    promotion = current_domain.repository_for(Promotion).get(world["promotion"].id)
    assert promotion.usage_count == count


@then(parsers.cfparse('the checkout is rejected as "{code}"'))
def _(error, code):
    assert error["exc"] is not None
    assert error["exc"].code == code


@then("no order exists")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().total == 0
