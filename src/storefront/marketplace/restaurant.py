"""Marketplace restaurant with its delivery rules."""

from protean.fields import Boolean, Float, HasMany, Integer, String

from storefront.domain import custom_setting, storefront
from storefront.settings.store_settings import DeliverySettings
from storefront.shared.money import to_cents


@storefront.entity(part_of="Restaurant")
class DeliveryRule:
    """Fee for a distance band. Distance routing is not computed, see ``delivery_settings``."""

    km_start = Float(default=0.0, min_value=0.0)
    km_end = Float(min_value=0.0)
    fee = Integer(required=True, min_value=0)  # cents
    is_active = Boolean(default=True)


@storefront.aggregate
class Restaurant:
    name = String(required=True, max_length=255)
    slug = String(required=True, max_length=255)
    min_order_value = Integer(default=0, min_value=0)  # cents
    is_active = Boolean(default=True)
    delivery_rules = HasMany(DeliveryRule)

    def delivery_settings(self):
        """Flat fee of the nearest active band, or the marketplace default.

        Marketplace delivery is never free above a threshold.
        """
        rules = sorted((rule for rule in self.delivery_rules if rule.is_active), key=lambda rule: rule.km_start)
        if rules:
            return DeliverySettings(flat_fee=rules[0].fee, free_above=None)
        return DeliverySettings(
            flat_fee=to_cents(custom_setting("default_marketplace_delivery_fee", "8.99")),
            free_above=None,
        )
