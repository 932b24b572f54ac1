"""Order tracking: what customers and the store panel watch while an order moves."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import OrderPlaced, OrderStatusChanged
from storefront.order.order import STATUS_LABELS, Order, OrderStatus


@storefront.projection
class OrderTracking:
    order_id = Identifier(identifier=True, required=True)
    user_id = Identifier()
    restaurant_id = Identifier()
    reference = String(required=True)
    status = String(required=True)
    status_label = String()
    delivery_mode = String()
    payment_method = String()
    item_count = Integer(default=0)
    total = Integer()  # cents
    placed_at = DateTime()
    updated_at = DateTime()


@storefront.projector(projector_for=OrderTracking, aggregates=[Order])
class OrderTrackingProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderTracking).add(
            OrderTracking(
                order_id=event.order_id,
                user_id=event.user_id,
                restaurant_id=event.restaurant_id,
                reference=event.reference,
                status=OrderStatus.PENDING.value,
                status_label=STATUS_LABELS[OrderStatus.PENDING],
                delivery_mode=event.delivery_mode,
                payment_method=event.payment_method,
                item_count=event.item_count,
                total=event.total,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event):
        repo = current_domain.repository_for(OrderTracking)
        record = repo.get(event.order_id)
        record.status = event.new_status
        record.status_label = STATUS_LABELS[OrderStatus(event.new_status)]
        record.updated_at = event.changed_at
        repo.add(record)


def orders_for_user(user_id):
    """Tracked orders of ``user_id``, most recent first."""
    records = current_domain.repository_for(OrderTracking)._dao.query.filter(user_id=user_id).all().items
    return sorted(records, key=lambda record: record.placed_at, reverse=True)


def orders_for_store(status=None, restaurant_id=None):
    """Store panel listing, optionally narrowed to a status or a restaurant."""
    filters = {}
    if status:
        filters["status"] = status
    if restaurant_id:
        filters["restaurant_id"] = restaurant_id
    query = current_domain.repository_for(OrderTracking)._dao.query
    records = (query.filter(**filters) if filters else query).all().items
    return sorted(records, key=lambda record: record.placed_at, reverse=True)
