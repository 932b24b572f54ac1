from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from storefront.coupon.coupon import Coupon, canonical_code


class TestCanonicalCode:
    def test_trims_and_uppercases(self):
        assert canonical_code("  save10 ") == "SAVE10"

    def test_none_is_empty(self):
        assert canonical_code(None) == ""


class TestCouponCreation:
    def test_create_stores_canonical_code(self):
        coupon = Coupon.create(code="pizza20", discount_type="percentage", discount_value=20)
        assert coupon.code == "PIZZA20"
        assert coupon.current_uses == 0
        assert coupon.is_active

    def test_percentage_above_hundred_is_rejected(self):
        with pytest.raises(ValidationError):
            Coupon.create(code="TOOMUCH", discount_type="percentage", discount_value=150)

    def test_fixed_amount_may_exceed_hundred(self):
        coupon = Coupon.create(code="BIG", discount_type="fixed", discount_value=15000)
        assert coupon.discount_value == 15000

    def test_unknown_discount_type(self):
        with pytest.raises(ValueError):
            Coupon.create(code="ODD", discount_type="bogo", discount_value=1)


class TestCouponState:
    def test_not_expired_without_date(self):
        assert not Coupon.create(code="A", discount_type="fixed", discount_value=100).is_expired()

    def test_expired_in_the_past(self):
        coupon = Coupon.create(
            code="OLD",
            discount_type="fixed",
            discount_value=100,
            expires_at=datetime.now(UTC) - timedelta(hours=1),
        )
        assert coupon.is_expired()

    def test_naive_expiry_is_read_as_utc(self):
        coupon = Coupon.create(code="NAIVE", discount_type="fixed", discount_value=100, expires_at=datetime(2020, 1, 1))
        assert coupon.is_expired(datetime(2021, 1, 1, tzinfo=UTC))

    def test_exhausted_at_cap(self):
        coupon = Coupon.create(code="ONCE", discount_type="fixed", discount_value=100, max_uses=1)
        assert not coupon.is_exhausted
        coupon.record_usage()
        assert coupon.is_exhausted

    def test_unlimited_coupon_is_never_exhausted(self):
        coupon = Coupon.create(code="FOREVER", discount_type="fixed", discount_value=100)
        for _ in range(50):
            coupon.record_usage()
        assert not coupon.is_exhausted

    def test_deactivate(self):
        coupon = Coupon.create(code="STOP", discount_type="fixed", discount_value=100)
        coupon.deactivate()
        assert not coupon.is_active
