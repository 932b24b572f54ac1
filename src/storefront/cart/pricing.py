"""Cart pricing model: pure functions over cart state.

All amounts are integer cents. Nothing here is cached: callers recompute the
breakdown from the current cart on every read, which keeps totals consistent
with the latest mutation.

Formulas:
    subtotal        = Σ (unit_price + addons_unit_price) × quantity
    delivery_fee    = 0 for pickup, 0 at or above the free threshold, else flat fee
    coupon_discount = percentage of subtotal or a fixed amount, capped at subtotal
    points_discount = points × point value
    total           = max(0, subtotal + delivery_fee − coupon_discount − points_discount)
    earned_points   = floor(subtotal − coupon_discount) in whole currency units
"""

from dataclasses import dataclass
from enum import Enum

from storefront.shared.money import percent_of, whole_units


class DeliveryMode(Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class PriceBreakdown:
    """Derived totals for one cart state, in cents."""

    subtotal: int
    delivery_fee: int
    coupon_discount: int
    points_to_redeem: int
    points_discount: int
    total: int
    earned_points: int
    max_redeemable_points: int

    @property
    def order_value_before_points(self) -> int:
        return max(0, self.subtotal + self.delivery_fee - self.coupon_discount)


def compute_subtotal(lines) -> int:
    return sum((line.unit_price + (line.addons_unit_price or 0)) * line.quantity for line in lines)


def compute_delivery_fee(subtotal: int, mode, settings) -> int:
    """Fee for ``mode`` given ``settings`` (``flat_fee``, ``free_above``).

    A missing ``free_above`` means delivery is never free.
    """
    if DeliveryMode(mode) == DeliveryMode.PICKUP:
        return 0
    if settings.free_above is not None and subtotal >= settings.free_above:
        return 0
    return settings.flat_fee


def compute_coupon_discount(subtotal: int, coupon) -> int:
    if coupon is None:
        return 0
    if DiscountType(coupon.discount_type) == DiscountType.PERCENTAGE:
        discount = percent_of(subtotal, coupon.discount_value)
    else:
        discount = coupon.discount_value
    return max(0, min(discount, subtotal))


def compute_points_discount(points_to_redeem: int, point_value: int) -> int:
    return points_to_redeem * point_value


def compute_total(subtotal: int, delivery_fee: int, coupon_discount: int, points_discount: int) -> int:
    return max(0, subtotal + delivery_fee - coupon_discount - points_discount)


def compute_earned_points(subtotal: int, coupon_discount: int) -> int:
    return whole_units(subtotal - coupon_discount)


def compute_max_redeemable_points(balance: int, order_value_before_points: int, point_value: int) -> int:
    """Upper bound for points: the balance, and never more than the order is worth."""
    if point_value <= 0:
        return 0
    return max(0, min(balance or 0, order_value_before_points // point_value))


def clamp_points(requested: int, max_redeemable: int) -> int:
    return max(0, min(int(requested or 0), max_redeemable))


def price_cart(lines, mode, settings, coupon, requested_points, points_balance, point_value) -> PriceBreakdown:
    """Compute the full breakdown for a cart state."""
    subtotal = compute_subtotal(lines)
    delivery_fee = compute_delivery_fee(subtotal, mode, settings)
    coupon_discount = compute_coupon_discount(subtotal, coupon)

    max_points = compute_max_redeemable_points(
        points_balance,
        max(0, subtotal + delivery_fee - coupon_discount),
        point_value,
    )
    points = clamp_points(requested_points, max_points)
    points_discount = compute_points_discount(points, point_value)

    return PriceBreakdown(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        coupon_discount=coupon_discount,
        points_to_redeem=points,
        points_discount=points_discount,
        total=compute_total(subtotal, delivery_fee, coupon_discount, points_discount),
        earned_points=compute_earned_points(subtotal, coupon_discount),
        max_redeemable_points=max_points,
    )
