"""Menu product aggregate with its included (combo) items."""

from protean.exceptions import ValidationError
from protean.fields import Boolean, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.entity(part_of="Product")
class IncludedItem:
    """A product that ships inside a combo, e.g. the drink of a burger meal."""

    included_product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(default=1, min_value=1)
    sort_order = Integer(default=0)

    def to_dict(self):
        return {"product_id": str(self.included_product_id), "name": self.name, "quantity": self.quantity}


@storefront.aggregate
class Product:
    tenant_id = Identifier()
    restaurant_id = Identifier()  # marketplace products only
    name = String(required=True, max_length=255)
    description = Text()
    price = Integer(required=True, min_value=0)  # cents
    category = String(max_length=100)
    image_url = String(max_length=1000)
    is_available = Boolean(default=True)
    included_items = HasMany(IncludedItem)

    def include(self, product, quantity=1):
        if str(product.id) == str(self.id):
            raise ValidationError({"included_items": ["A product cannot include itself"]})
        self.add_included_items(
            IncludedItem(
                included_product_id=product.id,
                name=product.name,
                quantity=quantity,
                sort_order=len(self.included_items),
            )
        )

    @property
    def combo_items(self):
        return [item.to_dict() for item in sorted(self.included_items, key=lambda item: item.sort_order)]
