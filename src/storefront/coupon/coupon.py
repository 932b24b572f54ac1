"""Coupon aggregate: discount codes managed from the store panel."""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from storefront.cart.pricing import DiscountType
from storefront.domain import storefront


def canonical_code(code):
    """Codes are case-insensitive; the stored form is trimmed and uppercased."""
    return (code or "").strip().upper()


@storefront.aggregate
class Coupon:
    """A discount code.

    ``discount_value`` is a whole percentage for percentage coupons and an
    amount in cents for fixed coupons. ``min_order_value`` is in cents.
    """

    tenant_id = Identifier()
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Integer(required=True, min_value=0)
    min_order_value = Integer(default=0, min_value=0)
    max_uses = Integer(min_value=1)
    current_uses = Integer(default=0, min_value=0)
    expires_at = DateTime()
    is_active = Boolean(default=True)

    @invariant.post
    def percentage_cannot_exceed_one_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value > 100:
            raise ValidationError({"discount_value": ["Percentage discounts cannot exceed 100"]})

    @invariant.post
    def code_is_canonical(self):
        if self.code != canonical_code(self.code):
            raise ValidationError({"code": ["Coupon codes must be trimmed and uppercase"]})

    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value,
        min_order_value=0,
        max_uses=None,
        expires_at=None,
        tenant_id=None,
    ):
        return cls(
            tenant_id=tenant_id,
            code=canonical_code(code),
            discount_type=DiscountType(discount_type).value,
            discount_value=discount_value,
            min_order_value=min_order_value or 0,
            max_uses=max_uses,
            expires_at=expires_at,
        )

    def is_expired(self, now=None):
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at < (now or datetime.now(UTC))

    @property
    def is_exhausted(self):
        return self.max_uses is not None and self.current_uses >= self.max_uses

    def record_usage(self):
        """Count one placed order against the usage cap.

        Read-then-write: two orders committed at the same time can both pass
        the cap check.
        """
        self.current_uses = (self.current_uses or 0) + 1

    def deactivate(self):
        self.is_active = False
