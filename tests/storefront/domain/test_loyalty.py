import pytest
from protean.exceptions import ValidationError
from storefront.loyalty.events import PointsBalanceChanged
from storefront.loyalty.ledger import PointsTransactionType, entries_for_order
from storefront.loyalty.profile import Profile


class TestSettleOrder:
    def test_balance_minus_used_plus_earned(self):
        profile = Profile(user_id="user-001", points=300)
        assert profile.settle_order("order-1", points_used=200, points_earned=45) == 145

    def test_event_records_both_balances(self):
        profile = Profile(user_id="user-001", points=300)
        profile.settle_order("order-1", points_used=200, points_earned=45)

        event = profile._events[-1]
        assert isinstance(event, PointsBalanceChanged)
        assert event.previous_balance == 300
        assert event.new_balance == 145

    def test_cannot_use_more_than_the_balance(self):
        profile = Profile(user_id="user-001", points=50)
        with pytest.raises(ValidationError):
            profile.settle_order("order-1", points_used=80, points_earned=0)
        assert profile.points == 50

    def test_negative_balance_is_rejected(self):
        with pytest.raises(ValidationError):
            Profile(user_id="user-001", points=-1)


class TestLedgerEntries:
    def test_used_and_earned_rows(self):
        entries = entries_for_order("user-001", "order-1", points_used=200, points_earned=45, reference="abcd1234")

        assert [(e.type, e.amount) for e in entries] == [
            (PointsTransactionType.USED.value, -200),
            (PointsTransactionType.EARNED.value, 45),
        ]
        assert entries[0].description == "Redeemed on order #abcd1234"
        assert entries[1].description == "Points earned on order #abcd1234"

    def test_no_rows_for_zero_amounts(self):
        assert entries_for_order("user-001", "order-1", 0, 0, "abcd1234") == []

    def test_only_earned_row(self):
        entries = entries_for_order("user-001", "order-1", 0, 12, "abcd1234")
        assert len(entries) == 1
        assert entries[0].amount == 12
