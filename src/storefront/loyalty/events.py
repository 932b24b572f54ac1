"""Domain events for loyalty points."""

from protean.fields import Identifier, Integer

from storefront.domain import storefront


@storefront.event(part_of="Profile")
class PointsBalanceChanged:
    """An order redeemed and/or earned points for the customer."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_balance = Integer(required=True)
    new_balance = Integer(required=True)
    points_used = Integer(default=0)
    points_earned = Integer(default=0)
