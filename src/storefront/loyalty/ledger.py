"""Points ledger: append-only record of redeemed and earned points."""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront


class PointsTransactionType(Enum):
    EARNED = "earned"
    USED = "used"


@storefront.aggregate
class PointsTransaction:
    user_id = Identifier(required=True)
    order_id = Identifier()
    type = String(required=True, choices=PointsTransactionType)
    amount = Integer(required=True)  # signed: negative when points were used
    description = String(max_length=255)
    created_at = DateTime()

    @classmethod
    def used(cls, user_id, order_id, points, reference):
        return cls(
            user_id=user_id,
            order_id=order_id,
            type=PointsTransactionType.USED.value,
            amount=-points,
            description=f"Redeemed on order #{reference}",
            created_at=datetime.now(UTC),
        )

    @classmethod
    def earned(cls, user_id, order_id, points, reference):
        return cls(
            user_id=user_id,
            order_id=order_id,
            type=PointsTransactionType.EARNED.value,
            amount=points,
            description=f"Points earned on order #{reference}",
            created_at=datetime.now(UTC),
        )


def entries_for_order(user_id, order_id, points_used, points_earned, reference):
    """Ledger rows for one order: a ``used`` row and/or an ``earned`` row."""
    entries = []
    if points_used > 0:
        entries.append(PointsTransaction.used(user_id, order_id, points_used, reference))
    if points_earned > 0:
        entries.append(PointsTransaction.earned(user_id, order_id, points_earned, reference))
    return entries


def points_history(user_id):
    """Ledger rows of ``user_id``, newest first."""
    repo = current_domain.repository_for(PointsTransaction)
    entries = repo._dao.query.filter(user_id=user_id).all().items
    return sorted(entries, key=lambda entry: entry.created_at, reverse=True)
