"""Coupon validation: decides whether a code can be applied to a cart.

Checks run in a fixed order and the first failure wins:

    1. unknown or inactive code  → invalid_or_expired
    2. expiry date in the past   → expired
    3. usage cap reached         → exhausted
    4. subtotal under minimum    → below_minimum

Validation never consumes a use. Usage is counted only when an order is
placed, so the same code may sit in several abandoned carts.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, canonical_code
from storefront.shared.money import format_price

logger = structlog.get_logger(__name__)


class CouponRejection(Enum):
    INVALID_OR_EXPIRED = "invalid_or_expired"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    BELOW_MINIMUM = "below_minimum"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True)
class CouponOutcome:
    """Result of applying a coupon code: the accepted coupon or a typed reason."""

    success: bool
    message: str
    coupon: Coupon | None = None
    reason: CouponRejection | None = None

    @classmethod
    def accept(cls, coupon):
        return cls(success=True, message="Coupon applied successfully!", coupon=coupon)

    @classmethod
    def reject(cls, reason, message):
        return cls(success=False, message=message, reason=reason)


def find_active_coupon(code, tenant_id=None):
    """Repository lookup of an active coupon by its canonical code."""
    filters = {"code": canonical_code(code), "is_active": True}
    if tenant_id:
        filters["tenant_id"] = tenant_id
    results = current_domain.repository_for(Coupon)._dao.query.filter(**filters).all().items
    return results[0] if results else None


class CouponValidator:
    def __init__(self, lookup=find_active_coupon):
        self._lookup = lookup

    def validate(self, code, subtotal, now=None, tenant_id=None):
        now = now or datetime.now(UTC)

        try:
            coupon = self._lookup(canonical_code(code), tenant_id=tenant_id)
        except Exception:
            logger.warning("coupon_lookup_failed", code=code, exc_info=True)
            return CouponOutcome.reject(CouponRejection.LOOKUP_FAILED, "Could not verify the coupon, please try again")

        if coupon is None or not coupon.is_active:
            return self._reject(code, CouponRejection.INVALID_OR_EXPIRED, "Invalid or expired coupon")

        if coupon.is_expired(now):
            return self._reject(code, CouponRejection.EXPIRED, "Expired coupon")

        if coupon.is_exhausted:
            return self._reject(code, CouponRejection.EXHAUSTED, "Coupon usage limit reached")

        if coupon.min_order_value and subtotal < coupon.min_order_value:
            return self._reject(
                code,
                CouponRejection.BELOW_MINIMUM,
                f"Minimum order of {format_price(coupon.min_order_value)} for this coupon",
            )

        return CouponOutcome.accept(coupon)

    def _reject(self, code, reason, message):
        logger.info("coupon_rejected", code=code, reason=reason.value)
        return CouponOutcome.reject(reason, message)
