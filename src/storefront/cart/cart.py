"""Cart aggregate: line items, delivery mode, coupon and points selection.

The cart keeps only the inputs of pricing. Subtotal, fees, discounts, the
redeemable points and the total are derived on every read through
``storefront.cart.pricing``, so a line edit, a coupon change or a new points
balance can never leave a stale total or an out-of-bounds point redemption
behind.

Two variants share this aggregate:
    * the store cart of a single tenant;
    * the marketplace cart, which holds products of one restaurant at a time.
      Adding a product from another restaurant discards the current lines and
      starts over for the new restaurant.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartLineAdded,
    CartLineQuantityChanged,
    CartLineRemoved,
    CartRestaurantSwitched,
)
from storefront.cart.pricing import DeliveryMode, DiscountType, price_cart
from storefront.domain import storefront
from storefront.settings.store_settings import DeliverySettings

DEFAULT_POINT_VALUE = 10  # cents per point


class CartKind(Enum):
    STORE = "store"
    MARKETPLACE = "marketplace"


@storefront.value_object(part_of="Cart")
class AddonSelection:
    """One chosen add-on option, priced per unit of the product it decorates."""

    group_id = Identifier(required=True)
    group_name = String(max_length=255)
    option_id = Identifier(required=True)
    option_name = String(required=True, max_length=255)
    unit_price = Integer(default=0, min_value=0)
    quantity = Integer(required=True, min_value=1)

    def to_dict(self):
        return {
            "group_id": str(self.group_id),
            "group_name": self.group_name,
            "option_id": str(self.option_id),
            "option_name": self.option_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
        }


@storefront.value_object(part_of="Cart")
class AppliedCoupon:
    """Coupon terms captured when the coupon was accepted for this cart."""

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Integer(required=True, min_value=0)
    min_order_value = Integer(default=0, min_value=0)


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)
    addons = Text()  # JSON: list of AddonSelection dicts
    addons_unit_price = Integer(default=0, min_value=0)
    included_items = Text()  # JSON: list of {name, quantity}
    added_at = DateTime()

    @property
    def line_id(self):
        return str(self.id)

    @property
    def selected_addons(self):
        data = json.loads(self.addons) if self.addons else []
        return [AddonSelection(**item) for item in data]

    @property
    def has_addons(self):
        return bool(self.addons and json.loads(self.addons))

    @property
    def line_total(self):
        return (self.unit_price + (self.addons_unit_price or 0)) * self.quantity


@storefront.aggregate
class Cart:
    customer_id = Identifier()
    tenant_id = Identifier()
    kind = String(choices=CartKind, default=CartKind.STORE.value)
    restaurant_id = Identifier()
    restaurant_name = String(max_length=255)
    restaurant_slug = String(max_length=255)
    lines = HasMany(CartLine)
    delivery_mode = String(choices=DeliveryMode, default=DeliveryMode.DELIVERY.value)
    delivery_settings = ValueObject(DeliverySettings)
    applied_coupon = ValueObject(AppliedCoupon)
    points_requested = Integer(default=0, min_value=0)
    points_balance = Integer(default=0, min_value=0)
    point_value = Integer(default=DEFAULT_POINT_VALUE, min_value=1)
    is_open = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def marketplace_lines_belong_to_a_restaurant(self):
        if self.kind == CartKind.MARKETPLACE.value and self.lines and not self.restaurant_id:
            raise ValidationError({"restaurant_id": ["Marketplace cart lines must belong to a restaurant"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id=None,
        tenant_id=None,
        marketplace=False,
        delivery_settings=None,
        point_value=DEFAULT_POINT_VALUE,
    ):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            tenant_id=tenant_id,
            kind=(CartKind.MARKETPLACE if marketplace else CartKind.STORE).value,
            delivery_settings=delivery_settings or DeliverySettings.fallback(),
            point_value=point_value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def is_marketplace(self):
        return self.kind == CartKind.MARKETPLACE.value

    @property
    def is_empty(self):
        return not self.lines

    @property
    def total_items(self):
        return sum(line.quantity for line in self.lines)

    @property
    def pricing(self):
        return price_cart(
            lines=self.lines,
            mode=self.delivery_mode,
            settings=self.delivery_settings or DeliverySettings.fallback(),
            coupon=self.applied_coupon,
            requested_points=self.points_requested,
            points_balance=self.points_balance,
            point_value=self.point_value,
        )

    @property
    def points_to_redeem(self):
        return self.pricing.points_to_redeem

    def find_line(self, line_id):
        return next((line for line in self.lines if str(line.id) == str(line_id)), None)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(self, product, addons=None, addons_unit_price=None, included_items=None, restaurant=None):
        """Add one unit of ``product`` and return the id of the affected line.

        Without add-ons the unit coalesces into an existing add-on-free line of
        the same product. With add-ons a new line is always created, so the
        same product can sit in the cart under several configurations.
        """
        if self.is_marketplace:
            if restaurant is None:
                raise ValidationError({"restaurant": ["Marketplace items must name their restaurant"]})
            self._switch_restaurant(restaurant)

        addons = list(addons or [])
        if addons_unit_price is None:
            addons_unit_price = sum(addon.unit_price * addon.quantity for addon in addons)

        now = datetime.now(UTC)
        existing = None
        if not addons:
            existing = next(
                (
                    line
                    for line in self.lines
                    if str(line.product_id) == str(product.id) and not line.has_addons
                ),
                None,
            )

        if existing:
            existing.quantity += 1
            line_id = str(existing.id)
        else:
            line = CartLine(
                product_id=product.id,
                product_name=product.name,
                unit_price=product.price,
                quantity=1,
                addons=json.dumps([addon.to_dict() for addon in addons]),
                addons_unit_price=addons_unit_price,
                included_items=json.dumps(included_items or []),
                added_at=now,
            )
            self.add_lines(line)
            line_id = str(line.id)

        self.is_open = True
        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=line_id,
                product_id=str(product.id),
                quantity=1,
                coalesced=existing is not None,
            )
        )
        return line_id

    def _switch_restaurant(self, restaurant):
        if self.restaurant_id and str(self.restaurant_id) == str(restaurant.id):
            return

        previous = self.restaurant_id
        discarded = len(self.lines)
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.restaurant_id = restaurant.id
            self.restaurant_name = restaurant.name
            self.restaurant_slug = restaurant.slug
            self.delivery_settings = restaurant.delivery_settings()
            self.applied_coupon = None
            self.points_requested = 0

        if previous:
            self.raise_(
                CartRestaurantSwitched(
                    cart_id=str(self.id),
                    previous_restaurant_id=str(previous),
                    restaurant_id=str(restaurant.id),
                    discarded_lines=discarded,
                )
            )

    def remove_line(self, line_id):
        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})

        self.remove_lines(line)
        if self.is_marketplace and not self.lines:
            self._forget_restaurant()
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def set_quantity(self, line_id, quantity):
        if quantity <= 0:
            self.remove_line(line_id)
            return

        line = self.find_line(line_id)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})

        previous_quantity = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityChanged(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def clear(self):
        """Empty lines, coupon and points. Used once the order is placed."""
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.applied_coupon = None
            self.points_requested = 0
            self.is_open = False
            if self.is_marketplace:
                self._forget_restaurant()
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id)))

    def _forget_restaurant(self):
        self.restaurant_id = None
        self.restaurant_name = None
        self.restaurant_slug = None

    # -------------------------------------------------------------------
    # Coupon and points
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon):
        """Store an accepted coupon, replacing any coupon applied before."""
        replaced = self.applied_coupon.code if self.applied_coupon else None
        self.applied_coupon = AppliedCoupon(
            coupon_id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            min_order_value=coupon.min_order_value or 0,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=coupon.code,
                replaced_code=replaced,
            )
        )

    def remove_coupon(self):
        if self.applied_coupon is None:
            return

        code = self.applied_coupon.code
        self.applied_coupon = None
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    def redeem_points(self, points):
        """Request ``points`` for redemption, clamped to what is redeemable now."""
        self.points_requested = max(0, min(int(points), self.pricing.max_redeemable_points))
        self.updated_at = datetime.now(UTC)

    def refresh_points_balance(self, balance):
        self.points_balance = max(0, int(balance or 0))

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def set_delivery_mode(self, mode):
        try:
            self.delivery_mode = DeliveryMode(mode).value
        except ValueError:
            raise ValidationError({"delivery_mode": [f"Unknown delivery mode {mode}"]})
        self.updated_at = datetime.now(UTC)

    def use_delivery_settings(self, settings):
        self.delivery_settings = settings

    def open_panel(self):
        self.is_open = True

    def close_panel(self):
        self.is_open = False
