"""Order aggregate: the persisted result of a checkout.

Everything on an order is a snapshot taken when it was placed: item names and
prices, fees, discounts, points and the delivery address text. Later catalog,
coupon or address edits never reach it. Only ``status`` moves afterwards:

    pending → accepted → preparing → sent → delivered
    pending | accepted | preparing → cancelled
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from storefront.cart.pricing import DeliveryMode
from storefront.domain import custom_setting, storefront
from storefront.order.events import OrderPlaced, OrderStatusChanged


class OrderStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    SENT = "sent"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH = "cash"


STATUS_LABELS = {
    OrderStatus.PENDING: "Awaiting confirmation",
    OrderStatus.ACCEPTED: "Accepted",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.SENT: "Out for delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.SENT, OrderStatus.CANCELLED},
    OrderStatus.SENT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def short_reference(order_id):
    """Customer-facing order number: the first characters of the id."""
    return str(order_id)[: custom_setting("short_reference_length", 8)]


@storefront.entity(part_of="Order")
class OrderItem:
    """A line of the order, detached from the live product."""

    product_id = Identifier()
    product_name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)  # cents, add-ons included
    quantity = Integer(required=True, min_value=1)
    addons = Text()  # JSON: list of add-on dicts
    included_items = Text()  # JSON: list of {name, quantity}

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    @property
    def addon_list(self):
        return json.loads(self.addons) if self.addons else []


@storefront.aggregate
class Order:
    user_id = Identifier()
    tenant_id = Identifier()
    restaurant_id = Identifier()
    items = HasMany(OrderItem)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivery_mode = String(required=True, choices=DeliveryMode)
    delivery_address = Text()
    payment_method = String(required=True, choices=PaymentMethod)
    change_for = Integer(min_value=0)  # cents
    notes = Text()

    # Pricing snapshot, in cents
    subtotal = Integer(required=True, min_value=0)
    delivery_fee = Integer(default=0, min_value=0)
    coupon_code = String(max_length=50)
    coupon_discount = Integer(default=0, min_value=0)
    points_used = Integer(default=0, min_value=0)
    points_discount = Integer(default=0, min_value=0)
    points_earned = Integer(default=0, min_value=0)
    total = Integer(required=True, min_value=0)

    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def place(
        cls,
        user_id,
        lines,
        pricing,
        delivery_mode,
        payment_method,
        delivery_address=None,
        change_for=None,
        notes=None,
        coupon_code=None,
        tenant_id=None,
        restaurant_id=None,
    ):
        """Snapshot cart ``lines`` and a ``PriceBreakdown`` into a pending order."""
        mode = DeliveryMode(delivery_mode)
        method = PaymentMethod(payment_method)
        now = datetime.now(UTC)
        order = cls(
            user_id=user_id,
            tenant_id=tenant_id,
            restaurant_id=restaurant_id,
            delivery_mode=mode.value,
            delivery_address=delivery_address if mode == DeliveryMode.DELIVERY else None,
            payment_method=method.value,
            change_for=change_for if method == PaymentMethod.CASH else None,
            notes=notes or None,
            subtotal=pricing.subtotal,
            delivery_fee=pricing.delivery_fee,
            coupon_code=coupon_code,
            coupon_discount=pricing.coupon_discount,
            points_used=pricing.points_to_redeem,
            points_discount=pricing.points_discount,
            points_earned=pricing.earned_points,
            total=pricing.total,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(
                OrderItem(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    unit_price=line.unit_price + (line.addons_unit_price or 0),
                    quantity=line.quantity,
                    addons=line.addons or "[]",
                    included_items=line.included_items or "[]",
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id) if user_id else None,
                restaurant_id=str(restaurant_id) if restaurant_id else None,
                reference=order.reference,
                delivery_mode=order.delivery_mode,
                payment_method=order.payment_method,
                item_count=sum(item.quantity for item in order.items),
                total=order.total,
                points_used=order.points_used,
                points_earned=order.points_earned,
                coupon_code=order.coupon_code,
                placed_at=now,
            )
        )
        return order

    @property
    def reference(self):
        return short_reference(self.id)

    @property
    def status_label(self):
        return STATUS_LABELS[OrderStatus(self.status)]

    @property
    def is_cancellable(self):
        return OrderStatus.CANCELLED in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def transition_to(self, new_status):
        current = OrderStatus(self.status)
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status {new_status}"]})
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot move order from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    def accept(self):
        self.transition_to(OrderStatus.ACCEPTED)

    def start_preparing(self):
        self.transition_to(OrderStatus.PREPARING)

    def send(self):
        self.transition_to(OrderStatus.SENT)

    def deliver(self):
        self.transition_to(OrderStatus.DELIVERED)

    def cancel(self):
        self.transition_to(OrderStatus.CANCELLED)
