"""Order routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from restaurant_pos.api.deps import OrderEngine
from restaurant_pos.core.rbac import CurrentUser, RequireFrontOfHouse, RequireKitchenView, RequireManager
from restaurant_pos.core.responses import paginated_response, success_response
from restaurant_pos.models.order import OrderStatus, OrderType
from restaurant_pos.schemas.orders import OrderCreate, OrderResponse, OrderStatusUpdate, OrderUpdate

router = APIRouter()


def _order(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


@router.get("")
def list_orders(
    engine: OrderEngine,
    current_user: CurrentUser,
    status: Optional[OrderStatus] = None,
    order_type: Optional[OrderType] = None,
    date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Newest orders first, scoped to what the caller's role may see."""
    items, total = engine.list_orders(current_user, status, order_type, date, page, limit)
    return paginated_response("orders", [_order(o) for o in items], total, page, limit)


@router.get("/kitchen/display")
def kitchen_display(engine: OrderEngine, current_user: RequireKitchenView):
    """Orders waiting on the kitchen, oldest first."""
    orders = engine.kitchen_display()
    return success_response({"orders": [_order(o) for o in orders], "count": len(orders)})


@router.get("/{order_id}")
def get_order(order_id: int, engine: OrderEngine, current_user: CurrentUser):
    return success_response({"order": _order(engine.get_order(order_id, current_user))})


@router.post("", status_code=201)
def create_order(body: OrderCreate, engine: OrderEngine, current_user: RequireFrontOfHouse):
    order = engine.create(body.model_dump(), current_user)
    return success_response({"order": _order(order)}, "Order created successfully")


@router.put("/{order_id}")
def update_order(order_id: int, body: OrderUpdate, engine: OrderEngine, current_user: RequireFrontOfHouse):
    order = engine.update(order_id, body.model_dump(exclude_unset=True), current_user)
    return success_response({"order": _order(order)}, "Order updated successfully")


@router.put("/{order_id}/status")
def update_order_status(order_id: int, body: OrderStatusUpdate, engine: OrderEngine, current_user: CurrentUser):
    order = engine.update_status(order_id, body.status, current_user, body.notes)
    return success_response({"order": _order(order)}, f"Order status updated to {order.status.value}")


@router.delete("/{order_id}")
def delete_order(order_id: int, engine: OrderEngine, current_user: RequireManager):
    engine.delete(order_id, current_user)
    return success_response(None, "Order deleted successfully")
