from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    bed = DomainFixture(storefront)
    bed.setup()
    setup_db(storefront)
    yield bed
    drop_db(storefront)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    from storefront.menu.product import Product

    def _make(name="X-Burger", price=5000, restaurant_id=None, persist=True, **kwargs):
        product = Product(name=name, price=price, restaurant_id=restaurant_id, **kwargs)
        if persist:
            current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_coupon():
    from storefront.coupon.coupon import Coupon

    def _make(code="SAVE10", discount_type="percentage", discount_value=10, current_uses=0, **kwargs):
        coupon = Coupon.create(code=code, discount_type=discount_type, discount_value=discount_value, **kwargs)
        coupon.current_uses = current_uses
        current_domain.repository_for(Coupon).add(coupon)
        return coupon

    return _make


@pytest.fixture()
def make_profile():
    from storefront.loyalty.profile import Profile

    def _make(user_id="user-001", points=0):
        profile = Profile(user_id=user_id, full_name="Ana Souza", points=points)
        current_domain.repository_for(Profile).add(profile)
        return profile

    return _make


@pytest.fixture()
def make_address():
    from storefront.customer.address import Address

    def _make(user_id="user-001", is_default=False, street="Rua das Flores", number="42", **kwargs):
        address = Address(
            user_id=user_id,
            street=street,
            number=number,
            neighborhood=kwargs.pop("neighborhood", "Centro"),
            city=kwargs.pop("city", "Curitiba"),
            state=kwargs.pop("state", "PR"),
            is_default=is_default,
            **kwargs,
        )
        current_domain.repository_for(Address).add(address)
        return address

    return _make


@pytest.fixture()
def make_restaurant():
    from storefront.marketplace.restaurant import DeliveryRule, Restaurant

    def _make(name="Pizzaria Napoli", slug="pizzaria-napoli", min_order_value=0, fee=None):
        restaurant = Restaurant(name=name, slug=slug, min_order_value=min_order_value)
        if fee is not None:
            restaurant.add_delivery_rules(DeliveryRule(km_start=0.0, km_end=5.0, fee=fee))
        current_domain.repository_for(Restaurant).add(restaurant)
        return restaurant

    return _make


@pytest.fixture()
def yesterday():
    return datetime.now(UTC) - timedelta(days=1)


@pytest.fixture()
def next_week():
    return datetime.now(UTC) + timedelta(days=7)
