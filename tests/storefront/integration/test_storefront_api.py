"""Integration tests for the Storefront API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers
from storefront.api.routes import cart_router, checkout_router, order_router, points_router, store_router
from storefront.menu.addons import AddonGroup, AddonOption, ProductAddonGroup
from storefront.order.order import Order

CUSTOMER = {"X-User-Id": "user-001"}
LOJISTA = {"X-User-Id": "staff-001", "X-User-Role": "lojista"}


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (cart_router, checkout_router, order_router, points_router, store_router):
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


def _add(client, product_id, headers=CUSTOMER, **params):
    response = client.post("/cart/lines", json={"product_id": product_id}, headers=headers, params=params)
    assert response.status_code == 201
    return response.json()


def _checkout(client, **body):
    body.setdefault("payment_method", "pix")
    return client.post("/checkout", json=body, headers=CUSTOMER)


class TestCartEndpoints:
    def test_anonymous_request_is_unauthorized(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json()["detail"] == "Sign in to continue"

    def test_get_empty_cart(self, client):
        response = client.get("/cart", headers=CUSTOMER)
        assert response.status_code == 200
        body = response.json()
        assert body["lines"] == []
        assert body["pricing"]["subtotal"] == 0

    def test_add_line(self, client, make_product):
        product = make_product(price=4290)
        body = _add(client, product.id)
        assert body["total_items"] == 1
        assert body["pricing"]["subtotal"] == 4290

    def test_add_line_with_addons(self, client, make_product):
        product = make_product(price=3000)
        group = AddonGroup(name="Extras", max_selections=3)
        group.add_options(AddonOption(name="Bacon", additional_price=500))
        current_domain.repository_for(AddonGroup).add(group)
        current_domain.repository_for(ProductAddonGroup).add(
            ProductAddonGroup(product_id=product.id, addon_group_id=group.id)
        )

        response = client.post(
            "/cart/lines",
            json={
                "product_id": product.id,
                "addons": [{"group_id": group.id, "option_id": group.options[0].id, "quantity": 2}],
            },
            headers=CUSTOMER,
        )

        assert response.status_code == 201
        line = response.json()["lines"][0]
        assert line["addons_unit_price"] == 1000
        assert line["line_total"] == 4000

    def test_addon_quantity_above_group_cap(self, client, make_product):
        product = make_product(price=3000)
        group = AddonGroup(name="Sauces", max_selections=2)
        group.add_options(AddonOption(name="Cheddar", additional_price=300))
        current_domain.repository_for(AddonGroup).add(group)
        current_domain.repository_for(ProductAddonGroup).add(
            ProductAddonGroup(product_id=product.id, addon_group_id=group.id)
        )

        response = client.post(
            "/cart/lines",
            json={
                "product_id": product.id,
                "addons": [{"group_id": group.id, "option_id": group.options[0].id, "quantity": 10}],
            },
            headers=CUSTOMER,
        )

        assert response.status_code == 400
        assert client.get("/cart", headers=CUSTOMER).json()["lines"] == []

    def test_unavailable_product(self, client, make_product):
        product = make_product(is_available=False)
        response = client.post("/cart/lines", json={"product_id": product.id}, headers=CUSTOMER)
        assert response.status_code == 400

    def test_update_and_remove_line(self, client, make_product):
        line_id = _add(client, make_product().id)["lines"][0]["line_id"]

        response = client.put(f"/cart/lines/{line_id}", json={"quantity": 3}, headers=CUSTOMER)
        assert response.json()["total_items"] == 3

        response = client.delete(f"/cart/lines/{line_id}", headers=CUSTOMER)
        assert response.json()["lines"] == []

    def test_apply_coupon(self, client, make_product, make_coupon):
        make_coupon()
        _add(client, make_product(price=10000).id)

        response = client.post("/cart/coupon", json={"code": "save10"}, headers=CUSTOMER)

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["cart"]["pricing"]["coupon_discount"] == 1000

    def test_rejected_coupon_reports_reason(self, client, make_product):
        _add(client, make_product().id)
        body = client.post("/cart/coupon", json={"code": "NOPE"}, headers=CUSTOMER).json()
        assert body["success"] is False
        assert body["reason"] == "invalid_or_expired"
        assert body["cart"]["coupon_code"] is None

    def test_redeem_points_is_clamped(self, client, make_product, make_profile):
        make_profile(points=120)
        _add(client, make_product(price=10000).id)
        body = client.put("/cart/points", json={"points": 500}, headers=CUSTOMER).json()
        assert body["pricing"]["points_to_redeem"] == 120

    def test_switch_to_pickup(self, client, make_product):
        _add(client, make_product().id)
        body = client.put("/cart/delivery-mode", json={"mode": "pickup"}, headers=CUSTOMER).json()
        assert body["pricing"]["delivery_fee"] == 0

    def test_unknown_delivery_mode(self, client):
        response = client.put("/cart/delivery-mode", json={"mode": "drone"}, headers=CUSTOMER)
        assert response.status_code == 400


class TestCheckoutEndpoint:
    def test_place_delivery_order(self, client, make_product, make_address):
        address = make_address()
        _add(client, make_product().id)

        response = _checkout(client, address_id=address.id)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == f"Order #{body['reference']} placed!"
        assert current_domain.repository_for(Order).get(body["order_id"]).total == 6199

    def test_empty_cart(self, client):
        response = _checkout(client, delivery_mode="pickup")
        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "empty_cart"

    def test_delivery_without_addresses(self, client, make_product):
        _add(client, make_product().id)
        response = _checkout(client)
        assert response.json()["detail"]["reason"] == "no_addresses"

    def test_change_too_low(self, client, make_product):
        _add(client, make_product().id)
        response = _checkout(client, delivery_mode="pickup", payment_method="cash", change_for=1000)
        assert response.json()["detail"]["reason"] == "change_too_low"


class TestOrderEndpoints:
    def test_customer_sees_own_orders(self, client, make_product):
        _add(client, make_product().id)
        order_id = _checkout(client, delivery_mode="pickup").json()["order_id"]

        listing = client.get("/orders", headers=CUSTOMER).json()
        assert [entry["order_id"] for entry in listing] == [order_id]
        assert listing[0]["status_label"] == "Awaiting confirmation"

        detail = client.get(f"/orders/{order_id}", headers=CUSTOMER).json()
        assert detail["total"] == 5000

    def test_other_customers_get_not_found(self, client, make_product):
        _add(client, make_product().id)
        order_id = _checkout(client, delivery_mode="pickup").json()["order_id"]
        response = client.get(f"/orders/{order_id}", headers={"X-User-Id": "user-999"})
        assert response.status_code == 404

    def test_points_after_order(self, client, make_product):
        _add(client, make_product().id)
        _checkout(client, delivery_mode="pickup")

        body = client.get("/points", headers=CUSTOMER).json()

        assert body["balance"] == 50
        assert [entry["amount"] for entry in body["history"]] == [50]


class TestStorePanel:
    def test_customers_cannot_use_the_panel(self, client):
        assert client.get("/store/orders", headers=CUSTOMER).status_code == 403

    def test_lojista_moves_order_along(self, client, make_product):
        _add(client, make_product().id)
        order_id = _checkout(client, delivery_mode="pickup").json()["order_id"]

        response = client.put(f"/store/orders/{order_id}/status", json={"status": "accepted"}, headers=LOJISTA)
        assert response.status_code == 200

        pending = client.get("/store/orders", params={"status": "pending"}, headers=LOJISTA).json()
        accepted = client.get("/store/orders", params={"status": "accepted"}, headers=LOJISTA).json()
        assert pending == []
        assert [entry["order_id"] for entry in accepted] == [order_id]

    def test_invalid_transition(self, client, make_product):
        _add(client, make_product().id)
        order_id = _checkout(client, delivery_mode="pickup").json()["order_id"]
        response = client.put(f"/store/orders/{order_id}/status", json={"status": "sent"}, headers=LOJISTA)
        assert response.status_code == 400
