"""FastAPI routes for the Storefront: cart, checkout, orders and store panel.

Identity comes from the ``X-User-Id`` / ``X-User-Role`` headers set by the
authentication layer in front of this service.
"""

from fastapi import APIRouter, Header, HTTPException
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddLineRequest,
    ApplyCouponRequest,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    CouponResponse,
    DeliveryModeRequest,
    OrderResponse,
    PointsEntrySchema,
    PointsResponse,
    RedeemPointsRequest,
    SetQuantityRequest,
    StatusResponse,
    TrackedOrderSchema,
    UpdateStatusRequest,
)
from storefront.cart.store import CartStore, current_points_balance
from storefront.checkout.wizard import CheckoutStep, CheckoutWizard
from storefront.loyalty.ledger import points_history
from storefront.marketplace.restaurant import Restaurant
from storefront.menu.addons import addon_groups_for
from storefront.menu.product import Product
from storefront.menu.selection import AddonSelector
from storefront.order.order import Order
from storefront.order.status import UpdateOrderStatus
from storefront.projections.order_tracking import orders_for_store, orders_for_user

ELEVATED_ROLES = {"admin", "lojista"}


def _require_user(user_id):
    if not user_id:
        raise HTTPException(status_code=401, detail="Sign in to continue")
    return user_id


def _require_store_role(role):
    if role not in ELEVATED_ROLES:
        raise HTTPException(status_code=403, detail="Store panel access only")


def _open_store(user_id, tenant_id, marketplace):
    return CartStore.open(_require_user(user_id), tenant_id=tenant_id, marketplace=marketplace)


def _tracked(record):
    return TrackedOrderSchema(
        order_id=str(record.order_id),
        reference=record.reference,
        status=record.status,
        status_label=record.status_label,
        total=record.total,
        item_count=record.item_count or 0,
        placed_at=record.placed_at,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.post("/lines", status_code=201, response_model=CartResponse)
async def add_line(
    body: AddLineRequest,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)

    product = current_domain.repository_for(Product).get(body.product_id)
    if not product.is_available:
        raise ValidationError({"product_id": [f"{product.name} is not available right now"]})

    selector = AddonSelector(addon_groups_for(product.id))
    for choice in body.addons:
        if not selector.change_quantity(choice.group_id, choice.option_id, choice.quantity):
            raise ValidationError({"addons": ["Too many options selected for this group"]})
    addons, addons_unit_price = selector.confirm()

    restaurant = None
    if marketplace:
        if not product.restaurant_id:
            raise ValidationError({"product_id": ["Product is not sold by a marketplace restaurant"]})
        restaurant = current_domain.repository_for(Restaurant).get(product.restaurant_id)

    store.add_line(product, addons=addons, addons_unit_price=addons_unit_price, restaurant=restaurant)
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.put("/lines/{line_id}", response_model=CartResponse)
async def set_line_quantity(
    line_id: str,
    body: SetQuantityRequest,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    store.set_quantity(line_id, body.quantity)
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.delete("/lines/{line_id}", response_model=CartResponse)
async def remove_line(
    line_id: str,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    store.remove_line(line_id)
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.post("/coupon", response_model=CouponResponse)
async def apply_coupon(
    body: ApplyCouponRequest,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CouponResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    outcome = store.apply_coupon(body.code)
    return CouponResponse(
        success=outcome.success,
        message=outcome.message,
        reason=outcome.reason.value if outcome.reason else None,
        cart=CartResponse.from_snapshot(store.snapshot()),
    )


@cart_router.delete("/coupon", response_model=CartResponse)
async def remove_coupon(
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    store.remove_coupon()
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.put("/points", response_model=CartResponse)
async def redeem_points(
    body: RedeemPointsRequest,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    store.set_points_to_redeem(body.points)
    return CartResponse.from_snapshot(store.snapshot())


@cart_router.put("/delivery-mode", response_model=CartResponse)
async def set_delivery_mode(
    body: DeliveryModeRequest,
    marketplace: bool = False,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CartResponse:
    store = _open_store(x_user_id, x_tenant_id, marketplace)
    store.set_delivery_mode(body.mode)
    return CartResponse.from_snapshot(store.snapshot())


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
) -> CheckoutResponse:
    """Run the checkout steps with the submitted answers and place the order."""
    store = _open_store(x_user_id, x_tenant_id, body.marketplace)
    wizard = CheckoutWizard(store)

    outcome = wizard.set_delivery_mode(body.delivery_mode)
    if not outcome.success:
        raise HTTPException(status_code=400, detail={"reason": outcome.reason.value, "message": outcome.message})
    if body.address_id:
        wizard.select_address(body.address_id)
    wizard.set_payment_method(body.payment_method)
    wizard.set_change_for(body.change_for)
    wizard.set_notes(body.notes)

    while wizard.current_step != CheckoutStep.CONFIRM:
        outcome = wizard.next()
        if not outcome.success:
            raise HTTPException(status_code=400, detail={"reason": outcome.reason.value, "message": outcome.message})

    result = wizard.confirm()
    if not result.success:
        raise HTTPException(status_code=400, detail={"reason": result.reason.value, "message": result.message})
    return CheckoutResponse(order_id=result.order_id, reference=result.reference, message=result.message)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[TrackedOrderSchema])
async def list_orders(x_user_id: str | None = Header(default=None)) -> list[TrackedOrderSchema]:
    return [_tracked(record) for record in orders_for_user(_require_user(x_user_id))]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    if x_user_role not in ELEVATED_ROLES and str(order.user_id) != str(_require_user(x_user_id)):
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderResponse.from_order(order)


# ---------------------------------------------------------------------------
# Loyalty Router
# ---------------------------------------------------------------------------
points_router = APIRouter(prefix="/points", tags=["points"])


@points_router.get("", response_model=PointsResponse)
async def get_points(x_user_id: str | None = Header(default=None)) -> PointsResponse:
    user_id = _require_user(x_user_id)
    return PointsResponse(
        balance=current_points_balance(user_id),
        history=[
            PointsEntrySchema(
                type=entry.type,
                amount=entry.amount,
                description=entry.description,
                order_id=str(entry.order_id) if entry.order_id else None,
                created_at=entry.created_at,
            )
            for entry in points_history(user_id)
        ],
    )


# ---------------------------------------------------------------------------
# Store Panel Router
# ---------------------------------------------------------------------------
store_router = APIRouter(prefix="/store/orders", tags=["store"])


@store_router.get("", response_model=list[TrackedOrderSchema])
async def list_store_orders(
    status: str | None = None,
    restaurant_id: str | None = None,
    x_user_role: str | None = Header(default=None),
) -> list[TrackedOrderSchema]:
    _require_store_role(x_user_role)
    return [_tracked(record) for record in orders_for_store(status=status, restaurant_id=restaurant_id)]


@store_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    x_user_role: str | None = Header(default=None),
) -> StatusResponse:
    _require_store_role(x_user_role)
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=body.status), asynchronous=False)
    return StatusResponse()
