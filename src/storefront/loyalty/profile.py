"""Customer profile: the owner of the loyalty points balance."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String

from storefront.domain import storefront
from storefront.loyalty.events import PointsBalanceChanged


@storefront.aggregate
class Profile:
    user_id = Identifier(identifier=True, required=True)
    full_name = String(max_length=255)
    phone = String(max_length=30)
    points = Integer(default=0)

    @invariant.post
    def points_balance_cannot_be_negative(self):
        if self.points is not None and self.points < 0:
            raise ValidationError({"points": ["Points balance cannot be negative"]})

    def settle_order(self, order_id, points_used, points_earned):
        """Apply an order's redemption and earnings: ``balance − used + earned``."""
        if points_used > self.points:
            raise ValidationError({"points": [f"Only {self.points} points available, {points_used} requested"]})

        previous = self.points
        self.points = previous - points_used + points_earned

        self.raise_(
            PointsBalanceChanged(
                user_id=str(self.user_id),
                order_id=str(order_id),
                previous_balance=previous,
                new_balance=self.points,
                points_used=points_used,
                points_earned=points_earned,
            )
        )
        return self.points
