"""Domain events for the Cart aggregate."""

from protean.fields import Boolean, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartLineAdded:
    """A product (with an optional add-on configuration) went into the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    coalesced = Boolean(default=False)


@storefront.event(part_of="Cart")
class CartLineQuantityChanged:
    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartLineRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartRestaurantSwitched:
    """A marketplace cart dropped its lines to start over for another restaurant."""

    __version__ = 1

    cart_id = Identifier(required=True)
    previous_restaurant_id = Identifier()
    restaurant_id = Identifier(required=True)
    discarded_lines = Integer(required=True)


@storefront.event(part_of="Cart")
class CartCouponApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    replaced_code = String()


@storefront.event(part_of="Cart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """The cart was emptied after its order was placed."""

    __version__ = 1

    cart_id = Identifier(required=True)
