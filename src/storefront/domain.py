"""Storefront bounded context: menu, cart pricing, checkout and orders.

Holds the cart pricing engine (subtotal, delivery fee, coupon and loyalty
point discounts), the guided checkout wizard, and the order commit that
turns a cart into a persisted order.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")


def custom_setting(name, default=None):
    """Read a value from the ``[custom]`` table of ``domain.toml``."""
    custom = storefront.config.get("custom") or {}
    return custom.get(name, default)
