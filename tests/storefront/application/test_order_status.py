"""Application tests for store-panel status updates."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.cart.store import CartStore
from storefront.order.order import Order, OrderStatus
from storefront.order.placement import PlaceOrder
from storefront.order.status import UpdateOrderStatus


@pytest.fixture()
def order_id(make_product):
    store = CartStore.open("user-001")
    store.set_delivery_mode("pickup")
    store.add_line(make_product())
    return current_domain.process(
        PlaceOrder(cart_id=str(store.cart.id), user_id="user-001", payment_method="pix"),
        asynchronous=False,
    )


def _update(order_id, status):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)


class TestUpdateOrderStatus:
    def test_accept(self, order_id):
        _update(order_id, "accepted")
        assert current_domain.repository_for(Order).get(order_id).status == OrderStatus.ACCEPTED.value

    def test_full_lifecycle(self, order_id):
        for status in ("accepted", "preparing", "sent", "delivered"):
            _update(order_id, status)
        assert current_domain.repository_for(Order).get(order_id).status_label == "Delivered"

    def test_invalid_transition_is_rejected(self, order_id):
        with pytest.raises(ValidationError):
            _update(order_id, "delivered")
        assert current_domain.repository_for(Order).get(order_id).status == OrderStatus.PENDING.value

    def test_cancel_pending_order(self, order_id):
        _update(order_id, "cancelled")
        assert current_domain.repository_for(Order).get(order_id).status == OrderStatus.CANCELLED.value
