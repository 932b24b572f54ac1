"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was turned into a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    restaurant_id = Identifier()
    reference = String(required=True)
    delivery_mode = String(required=True)
    payment_method = String(required=True)
    item_count = Integer(default=0)
    total = Integer(required=True)  # cents
    points_used = Integer(default=0)
    points_earned = Integer(default=0)
    coupon_code = String()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """The store moved an order along its lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
