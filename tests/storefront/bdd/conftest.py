"""Shared BDD fixtures and step definitions for the Storefront cart."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when
from storefront.cart.store import CartStore
from storefront.coupon.coupon import Coupon
from storefront.settings.store_settings import DELIVERY_SETTINGS_KEY, StoreSetting
from storefront.shared.money import to_cents


@pytest.fixture()
def error():
    """Container for capturing errors raised in When steps."""
    return {"exc": None}


@pytest.fixture()
def outcome():
    return {"coupon": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("the store charges R$ {fee:f} for delivery, free from R$ {free_above:f}"),
    target_fixture="store_settings",
)
def store_charges_delivery(fee, free_above):
    setting = StoreSetting.create(DELIVERY_SETTINGS_KEY, {"fee": fee, "free_above": free_above})
    current_domain.repository_for(StoreSetting).add(setting)
    return setting


@given(
    parsers.cfparse("a cart with {quantity:d} units of a product priced R$ {price:f}"),
    target_fixture="store",
)
def cart_with_units(store_settings, make_product, quantity, price):
    store = CartStore.open("user-001")
    store.clear()
    line_id = store.add_line(make_product(price=to_cents(price)))
    store.set_quantity(line_id, quantity)
    return store


@given(parsers.cfparse('a percentage coupon "{code}" of {value:d} with a minimum order of R$ {minimum:f}'))
def percentage_coupon(make_coupon, code, value, minimum):
    make_coupon(code=code, discount_type="percentage", discount_value=value, min_order_value=to_cents(minimum))


@given(parsers.cfparse('a fixed coupon "{code}" of R$ {amount:f} used {used:d} of {cap:d} times'))
def fixed_coupon(make_coupon, code, amount, used, cap):
    make_coupon(code=code, discount_type="fixed", discount_value=to_cents(amount), max_uses=cap, current_uses=used)


@given(parsers.cfparse("the customer has {points:d} points"))
def customer_points(make_profile, store, points):
    make_profile(points=points)
    store.refresh_points_balance()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer applies the coupon "{code}"'))
def apply_coupon(store, outcome, error, code):
    try:
        outcome["coupon"] = store.apply_coupon(code)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse("the customer redeems {points:d} points"))
def redeem_points(store, points):
    store.set_points_to_redeem(points)


@when("the customer chooses pickup")
def choose_pickup(store):
    store.set_delivery_mode("pickup")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the subtotal is R$ {amount:f}"))
def subtotal_is(store, amount):
    assert store.totals.subtotal == to_cents(amount)


@then(parsers.cfparse("the delivery fee is R$ {amount:f}"))
def delivery_fee_is(store, amount):
    assert store.totals.delivery_fee == to_cents(amount)


@then(parsers.cfparse("the coupon discount is R$ {amount:f}"))
def coupon_discount_is(store, amount):
    assert store.totals.coupon_discount == to_cents(amount)


@then(parsers.cfparse("the points discount is R$ {amount:f}"))
def points_discount_is(store, amount):
    assert store.totals.points_discount == to_cents(amount)


@then(parsers.cfparse("the total is R$ {amount:f}"))
def total_is(store, amount):
    assert store.totals.total == to_cents(amount)


@then(parsers.cfparse("the order earns {points:d} points"))
def order_earns(store, points):
    assert store.totals.earned_points == points


@then(parsers.cfparse("{points:d} points are redeemed"))
def points_redeemed(store, points):
    assert store.totals.points_to_redeem == points
