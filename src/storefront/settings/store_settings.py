"""Tenant-scoped store settings: delivery pricing and the pickup address.

Settings are key/value rows (``delivery_settings``, ``store_address``) whose
value is a JSON document written by the store panel. Readers never fail: a
missing row, a malformed document or a data store error falls back to the
defaults in the ``[custom]`` table of ``domain.toml``.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import custom_setting, storefront
from storefront.shared.money import to_cents

logger = structlog.get_logger(__name__)

DELIVERY_SETTINGS_KEY = "delivery_settings"
STORE_ADDRESS_KEY = "store_address"
DEFAULT_TENANT = "default"

DEFAULT_STORE_ADDRESS = {
    "street": "Rua das Palmeiras",
    "number": "123",
    "neighborhood": "Centro",
    "city": "São Paulo",
    "state": "SP",
    "formatted": "Rua das Palmeiras, 123 - Centro, São Paulo/SP",
}


@storefront.value_object
class DeliverySettings:
    """Delivery pricing: a flat fee, waived at or above ``free_above`` (cents)."""

    flat_fee = Integer(required=True, min_value=0)
    free_above = Integer(min_value=0)

    @classmethod
    def fallback(cls):
        free_above = custom_setting("default_free_above", "150.00")
        return cls(
            flat_fee=to_cents(custom_setting("default_delivery_fee", "11.99")),
            free_above=to_cents(free_above) if free_above is not None else None,
        )

    @classmethod
    def from_document(cls, document):
        """Build from the stored JSON shape ``{"fee": 11.99, "free_above": 150}``."""
        free_above = document.get("free_above")
        return cls(
            flat_fee=to_cents(document["fee"]),
            free_above=to_cents(free_above) if free_above is not None else None,
        )


@storefront.value_object
class StoreAddress:
    street = String(max_length=255)
    number = String(max_length=20)
    neighborhood = String(max_length=100)
    city = String(max_length=100)
    state = String(max_length=50)
    formatted = String(required=True, max_length=500)


@storefront.aggregate
class StoreSetting:
    tenant_id = Identifier()
    key = String(required=True, max_length=100)
    value = Text(required=True)  # JSON document

    @classmethod
    def create(cls, key, value, tenant_id=None):
        return cls(tenant_id=tenant_id or DEFAULT_TENANT, key=key, value=json.dumps(value))

    @property
    def document(self):
        return json.loads(self.value)


def _read_setting(tenant_id, key):
    repo = current_domain.repository_for(StoreSetting)
    results = repo._dao.query.filter(tenant_id=tenant_id or DEFAULT_TENANT, key=key).all().items
    return results[0].document if results else None


def load_delivery_settings(tenant_id=None):
    try:
        document = _read_setting(tenant_id, DELIVERY_SETTINGS_KEY)
        if document:
            return DeliverySettings.from_document(document)
    except (KeyError, TypeError, ValueError, ValidationError):
        logger.warning("malformed_delivery_settings", tenant_id=tenant_id)
    except Exception:
        logger.warning("delivery_settings_read_failed", tenant_id=tenant_id, exc_info=True)
    return DeliverySettings.fallback()


def load_store_address(tenant_id=None):
    try:
        document = _read_setting(tenant_id, STORE_ADDRESS_KEY)
        if document:
            return StoreAddress(**document)
    except (TypeError, ValueError, ValidationError):
        logger.warning("malformed_store_address", tenant_id=tenant_id)
    except Exception:
        logger.warning("store_address_read_failed", tenant_id=tenant_id, exc_info=True)
    return StoreAddress(**DEFAULT_STORE_ADDRESS)
