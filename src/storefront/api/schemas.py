"""Pydantic request/response schemas for the Storefront API.

Amounts travel as integer cents; ``*_display`` fields carry the formatted
price for rendering.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from storefront.shared.money import CURRENCY, format_price


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddonChoice(BaseModel):
    group_id: str
    option_id: str
    quantity: int = Field(ge=1, default=1)


class AddLineRequest(BaseModel):
    product_id: str
    addons: list[AddonChoice] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "addons": [{"group_id": "grp-sauces", "option_id": "opt-cheddar", "quantity": 2}],
                }
            ]
        }
    }


class SetQuantityRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str


class RedeemPointsRequest(BaseModel):
    points: int


class DeliveryModeRequest(BaseModel):
    mode: str


class CartLineSchema(BaseModel):
    line_id: str
    product_id: str
    product_name: str
    unit_price: int
    addons_unit_price: int = 0
    addons: list[dict] = Field(default_factory=list)
    quantity: int
    line_total: int


class PricingSchema(BaseModel):
    subtotal: int
    delivery_fee: int
    coupon_discount: int
    points_to_redeem: int
    points_discount: int
    total: int
    earned_points: int
    max_redeemable_points: int
    total_display: str
    currency: str = CURRENCY

    @classmethod
    def from_breakdown(cls, breakdown):
        return cls(
            subtotal=breakdown.subtotal,
            delivery_fee=breakdown.delivery_fee,
            coupon_discount=breakdown.coupon_discount,
            points_to_redeem=breakdown.points_to_redeem,
            points_discount=breakdown.points_discount,
            total=breakdown.total,
            earned_points=breakdown.earned_points,
            max_redeemable_points=breakdown.max_redeemable_points,
            total_display=format_price(breakdown.total),
        )


class CartResponse(BaseModel):
    cart_id: str
    lines: list[CartLineSchema]
    delivery_mode: str
    coupon_code: str | None = None
    total_items: int
    restaurant_id: str | None = None
    restaurant_name: str | None = None
    pricing: PricingSchema

    @classmethod
    def from_snapshot(cls, snapshot):
        return cls(
            cart_id=snapshot.cart_id,
            lines=[CartLineSchema(**line) for line in snapshot.lines],
            delivery_mode=snapshot.delivery_mode,
            coupon_code=snapshot.coupon_code,
            total_items=snapshot.total_items,
            restaurant_id=snapshot.restaurant_id,
            restaurant_name=snapshot.restaurant_name,
            pricing=PricingSchema.from_breakdown(snapshot.pricing),
        )


class CouponResponse(BaseModel):
    success: bool
    message: str
    reason: str | None = None
    cart: CartResponse


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    marketplace: bool = False
    delivery_mode: str = "delivery"
    address_id: str | None = None
    payment_method: str
    change_for: int | None = Field(default=None, ge=0)
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "delivery_mode": "delivery",
                    "address_id": "addr-001",
                    "payment_method": "cash",
                    "change_for": 20000,
                    "notes": "No onions",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    reference: str
    message: str


# ---------------------------------------------------------------------------
# Orders and loyalty
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_name: str
    unit_price: int
    quantity: int
    addons: list[dict] = Field(default_factory=list)


class OrderResponse(BaseModel):
    order_id: str
    reference: str
    status: str
    status_label: str
    delivery_mode: str
    delivery_address: str | None = None
    payment_method: str
    change_for: int | None = None
    notes: str | None = None
    subtotal: int
    delivery_fee: int
    coupon_code: str | None = None
    coupon_discount: int
    points_used: int
    points_discount: int
    points_earned: int
    total: int
    items: list[OrderItemSchema]
    created_at: datetime | None = None

    @classmethod
    def from_order(cls, order):
        return cls(
            order_id=str(order.id),
            reference=order.reference,
            status=order.status,
            status_label=order.status_label,
            delivery_mode=order.delivery_mode,
            delivery_address=order.delivery_address,
            payment_method=order.payment_method,
            change_for=order.change_for,
            notes=order.notes,
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee,
            coupon_code=order.coupon_code,
            coupon_discount=order.coupon_discount,
            points_used=order.points_used,
            points_discount=order.points_discount,
            points_earned=order.points_earned,
            total=order.total,
            items=[
                OrderItemSchema(
                    product_name=item.product_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    addons=item.addon_list,
                )
                for item in order.items
            ],
            created_at=order.created_at,
        )


class TrackedOrderSchema(BaseModel):
    order_id: str
    reference: str
    status: str
    status_label: str | None = None
    total: int | None = None
    item_count: int = 0
    placed_at: datetime | None = None


class UpdateStatusRequest(BaseModel):
    status: str


class PointsEntrySchema(BaseModel):
    type: str
    amount: int
    description: str | None = None
    order_id: str | None = None
    created_at: datetime | None = None


class PointsResponse(BaseModel):
    balance: int
    history: list[PointsEntrySchema]


class StatusResponse(BaseModel):
    status: str = "ok"
