"""BDD tests for applying coupons to the cart."""

from pytest_bdd import parsers, scenarios, then

scenarios("features/cart_coupons.feature")


@then(parsers.cfparse('the coupon is rejected with "{reason}"'))
def coupon_rejected(outcome, error, reason):
    assert error["exc"] is None
    assert outcome["coupon"].success is False
    assert outcome["coupon"].reason.value == reason


@then(parsers.cfparse('the message is "{message}"'))
def rejection_message(outcome, message):
    assert outcome["coupon"].message == message
