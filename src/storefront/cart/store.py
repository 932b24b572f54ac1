"""Cart store: the application-facing handle on one customer's cart.

A ``CartStore`` wraps a ``Cart`` aggregate together with the collaborators it
needs (coupon validator, clock) and notifies subscribers with a fresh
``CartSnapshot`` after every mutation. Each store is an ordinary object:
tests and request handlers build as many independent instances as they need.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart, CartKind
from storefront.cart.pricing import PriceBreakdown
from storefront.coupon.validation import CouponValidator
from storefront.domain import custom_setting
from storefront.loyalty.profile import Profile
from storefront.settings.store_settings import load_delivery_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartSnapshot:
    cart_id: str
    lines: tuple
    delivery_mode: str
    coupon_code: str | None
    pricing: PriceBreakdown
    total_items: int
    is_open: bool
    restaurant_id: str | None = None
    restaurant_name: str | None = None


def current_points_balance(user_id):
    if not user_id:
        return 0
    try:
        return current_domain.repository_for(Profile).get(user_id).points
    except ObjectNotFoundError:
        return 0


class CartStore:
    def __init__(self, cart, validator=None, clock=None, persist=True):
        self.cart = cart
        self._validator = validator or CouponValidator()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._persist = persist
        self._subscribers = []

    # -------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, customer_id, tenant_id=None, marketplace=False, **kwargs):
        """The customer's existing cart of this kind, or a new one."""
        kind = (CartKind.MARKETPLACE if marketplace else CartKind.STORE).value
        repo = current_domain.repository_for(Cart)
        carts = repo._dao.query.filter(customer_id=customer_id, kind=kind).all().items

        if carts:
            cart = carts[0]
        else:
            cart = Cart.create(
                customer_id=customer_id,
                tenant_id=tenant_id,
                marketplace=marketplace,
                delivery_settings=None if marketplace else load_delivery_settings(tenant_id),
                point_value=custom_setting("point_value_cents", 10),
            )
            logger.info("cart_created", cart_id=str(cart.id), customer_id=customer_id, kind=kind)

        store = cls(cart, **kwargs)
        store.refresh_points_balance()
        return store

    @classmethod
    def load(cls, cart_id, **kwargs):
        return cls(current_domain.repository_for(Cart).get(cart_id), **kwargs)

    # -------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------
    def subscribe(self, callback):
        """Call ``callback(snapshot)`` after every change. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def totals(self):
        return self.cart.pricing

    def snapshot(self):
        cart = self.cart
        return CartSnapshot(
            cart_id=str(cart.id),
            lines=tuple(
                {
                    "line_id": str(line.id),
                    "product_id": str(line.product_id),
                    "product_name": line.product_name,
                    "unit_price": line.unit_price,
                    "addons_unit_price": line.addons_unit_price or 0,
                    "addons": [addon.to_dict() for addon in line.selected_addons],
                    "quantity": line.quantity,
                    "line_total": line.line_total,
                }
                for line in cart.lines
            ),
            delivery_mode=cart.delivery_mode,
            coupon_code=cart.applied_coupon.code if cart.applied_coupon else None,
            pricing=cart.pricing,
            total_items=cart.total_items,
            is_open=cart.is_open,
            restaurant_id=str(cart.restaurant_id) if cart.restaurant_id else None,
            restaurant_name=cart.restaurant_name,
        )

    def _notify(self):
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)

    def _changed(self):
        if self._persist:
            current_domain.repository_for(Cart).add(self.cart)
        self._notify()

    def reload(self):
        """Re-read the cart and the points balance after an order was placed elsewhere."""
        self.cart = current_domain.repository_for(Cart).get(self.cart.id)
        self.refresh_points_balance()
        self._notify()

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def add_line(self, product, addons=None, addons_unit_price=None, restaurant=None):
        line_id = self.cart.add_line(
            product,
            addons=addons,
            addons_unit_price=addons_unit_price,
            included_items=getattr(product, "combo_items", None),
            restaurant=restaurant,
        )
        self._changed()
        return line_id

    def remove_line(self, line_id):
        self.cart.remove_line(line_id)
        self._changed()

    def set_quantity(self, line_id, quantity):
        self.cart.set_quantity(line_id, quantity)
        self._changed()

    def clear(self):
        self.cart.clear()
        self._changed()

    # -------------------------------------------------------------------
    # Coupon, points and delivery
    # -------------------------------------------------------------------
    def apply_coupon(self, code):
        """Validate ``code`` against the current subtotal and apply it on success."""
        outcome = self._validator.validate(
            code,
            self.cart.pricing.subtotal,
            now=self._clock(),
            tenant_id=self.cart.tenant_id,
        )
        if outcome.success:
            self.cart.apply_coupon(outcome.coupon)
            self._changed()
            logger.info("coupon_applied", cart_id=str(self.cart.id), code=outcome.coupon.code)
        return outcome

    def remove_coupon(self):
        self.cart.remove_coupon()
        self._changed()

    def set_points_to_redeem(self, points):
        self.cart.redeem_points(points)
        self._changed()
        return self.cart.points_to_redeem

    def refresh_points_balance(self, balance=None):
        """Reload the customer's balance (or take ``balance``) into the cart."""
        if balance is None:
            balance = current_points_balance(self.cart.customer_id)
        self.cart.refresh_points_balance(balance)
        if self._persist:
            current_domain.repository_for(Cart).add(self.cart)
        return self.cart.points_balance

    def set_delivery_mode(self, mode):
        self.cart.set_delivery_mode(mode)
        self._changed()

    def close_panel(self):
        self.cart.close_panel()
        self._changed()
