"""Order placement: turns a persisted cart into an order in one unit of work.

The handler never trusts totals sent by the client. It reloads the cart,
refreshes the delivery settings and the points balance from storage,
re-validates the applied coupon and prices the cart again. All aggregates
are changed in memory first and persisted together at the end, in this
order:

    1. order header and items
    2. customer points balance
    3. points ledger entries
    4. coupon usage counter
    5. emptied cart

Command handlers run inside a ``UnitOfWork``, so either every write commits
or none does.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.pricing import DeliveryMode
from storefront.coupon.coupon import Coupon
from storefront.coupon.validation import CouponValidator
from storefront.customer.address import Address
from storefront.domain import storefront
from storefront.loyalty.ledger import PointsTransaction, entries_for_order
from storefront.loyalty.profile import Profile
from storefront.marketplace.restaurant import Restaurant
from storefront.order.order import Order, PaymentMethod
from storefront.settings.store_settings import load_delivery_settings
from storefront.shared.money import format_price

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    cart_id = Identifier(required=True)
    user_id = Identifier()
    payment_method = String(required=True, max_length=20)
    address_id = Identifier()
    change_for = Integer(min_value=0)  # cents
    notes = Text()


def _load_profile(user_id):
    if not user_id:
        return None
    try:
        return current_domain.repository_for(Profile).get(user_id)
    except ObjectNotFoundError:
        return Profile(user_id=user_id, points=0)


def _delivery_address_text(cart, address_id, user_id):
    if cart.delivery_mode != DeliveryMode.DELIVERY.value:
        return None
    if not address_id:
        raise ValidationError({"address_id": ["Choose a delivery address"]})
    address = current_domain.repository_for(Address).get(address_id)
    if str(address.user_id) != str(user_id):
        raise ValidationError({"address_id": ["Address does not belong to this customer"]})
    return address.formatted


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.get(command.cart_id)

        if str(cart.customer_id or "") != str(command.user_id or ""):
            raise ValidationError({"cart_id": ["Cart does not belong to this customer"]})
        if cart.is_empty:
            raise ValidationError({"cart": ["Cart is empty"]})

        restaurant = None
        if cart.is_marketplace:
            restaurant = current_domain.repository_for(Restaurant).get(cart.restaurant_id)
            cart.use_delivery_settings(restaurant.delivery_settings())
        else:
            cart.use_delivery_settings(load_delivery_settings(cart.tenant_id))

        profile = _load_profile(command.user_id)
        cart.refresh_points_balance(profile.points if profile else 0)

        coupon = None
        if cart.applied_coupon:
            outcome = CouponValidator().validate(
                cart.applied_coupon.code,
                cart.pricing.subtotal,
                tenant_id=cart.tenant_id,
            )
            if not outcome.success:
                raise ValidationError({"coupon": [outcome.message]})
            coupon = outcome.coupon
            applied = cart.applied_coupon
            if (applied.discount_type, applied.discount_value) != (coupon.discount_type, coupon.discount_value):
                cart.apply_coupon(coupon)

        pricing = cart.pricing

        if restaurant and pricing.subtotal < (restaurant.min_order_value or 0):
            raise ValidationError(
                {"cart": [f"Minimum order for {restaurant.name} is {format_price(restaurant.min_order_value)}"]}
            )

        try:
            method = PaymentMethod(command.payment_method)
        except ValueError:
            raise ValidationError({"payment_method": [f"Unknown payment method {command.payment_method}"]})
        if method == PaymentMethod.CASH and command.change_for is not None and command.change_for < pricing.total:
            raise ValidationError({"change_for": ["Change amount must be at least the order total"]})

        notes = command.notes
        if restaurant:
            notes = f"[{restaurant.name}] {notes or ''}".strip()

        order = Order.place(
            user_id=command.user_id,
            lines=cart.lines,
            pricing=pricing,
            delivery_mode=cart.delivery_mode,
            payment_method=method,
            delivery_address=_delivery_address_text(cart, command.address_id, command.user_id),
            change_for=command.change_for,
            notes=notes,
            coupon_code=coupon.code if coupon else None,
            tenant_id=cart.tenant_id,
            restaurant_id=restaurant.id if restaurant else None,
        )

        ledger = []
        if profile:
            profile.settle_order(order.id, pricing.points_to_redeem, pricing.earned_points)
            ledger = entries_for_order(
                profile.user_id,
                order.id,
                pricing.points_to_redeem,
                pricing.earned_points,
                order.reference,
            )

        if coupon:
            coupon.record_usage()

        cart.clear()

        current_domain.repository_for(Order).add(order)
        if profile:
            current_domain.repository_for(Profile).add(profile)
        for entry in ledger:
            current_domain.repository_for(PointsTransaction).add(entry)
        if coupon:
            current_domain.repository_for(Coupon).add(coupon)
        cart_repo.add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            reference=order.reference,
            user_id=command.user_id,
            total=order.total,
            points_used=order.points_used,
            points_earned=order.points_earned,
            coupon_code=order.coupon_code,
        )
        return str(order.id)
