"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state. Nothing is shared
between simulated customers.
"""

from dataclasses import dataclass, field


@dataclass
class CustomerState:
    """One simulated customer's cart and the orders they placed."""

    user_id: str
    line_ids: list[str] = field(default_factory=list)
    order_ids: list[str] = field(default_factory=list)
    coupon_applied: bool = False
