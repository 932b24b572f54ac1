"""Fixed-point money helpers.

Every monetary amount inside the storefront is an integer number of cents.
Conversions to and from decimal currency values happen only at the edges
(configuration, API payloads, display) and always round half-up.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

CURRENCY = "BRL"
CURRENCY_SYMBOL = "R$"

_CENT = Decimal("0.01")


def to_cents(amount) -> int:
    """Convert a currency amount (str, int, float or Decimal) to cents."""
    if amount is None:
        return 0
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def from_cents(cents: int) -> Decimal:
    """Convert cents back to a two-decimal currency amount."""
    return (Decimal(int(cents)) / 100).quantize(_CENT)


def percent_of(cents: int, percent) -> int:
    """``percent``% of ``cents``, rounded half-up to the cent."""
    value = Decimal(int(cents)) * Decimal(str(percent)) / 100
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def whole_units(cents: int) -> int:
    """Whole currency units contained in ``cents`` (floor, never negative)."""
    if cents <= 0:
        return 0
    return int((Decimal(int(cents)) / 100).to_integral_value(rounding=ROUND_FLOOR))


def format_price(cents: int) -> str:
    return f"{CURRENCY_SYMBOL} {from_cents(cents)}"
