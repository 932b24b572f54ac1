from decimal import Decimal

from storefront.shared.money import format_price, from_cents, percent_of, to_cents, whole_units


class TestConversions:
    def test_to_cents_from_string(self):
        assert to_cents("11.99") == 1199

    def test_to_cents_from_float_has_no_binary_artifacts(self):
        assert to_cents(0.1 + 0.2) == 30

    def test_to_cents_rounds_half_up(self):
        assert to_cents("0.125") == 13

    def test_to_cents_of_none_is_zero(self):
        assert to_cents(None) == 0

    def test_from_cents(self):
        assert from_cents(7199) == Decimal("71.99")


class TestArithmetic:
    def test_percent_of_rounds_half_up(self):
        assert percent_of(1005, 10) == 101

    def test_whole_units_floors(self):
        assert whole_units(9099) == 90

    def test_whole_units_never_negative(self):
        assert whole_units(-500) == 0


class TestFormatting:
    def test_format_price(self):
        assert format_price(20000) == "R$ 200.00"

    def test_format_small_amount(self):
        assert format_price(5) == "R$ 0.05"
