"""Inventory routes."""

from typing import Optional

from fastapi import APIRouter, Query

from restaurant_pos.api.deps import InventoryLedger
from restaurant_pos.core.rbac import CurrentUser, RequireManager
from restaurant_pos.core.responses import paginated_response, success_response
from restaurant_pos.models.inventory import InventoryCategory, StockStatus
from restaurant_pos.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    StockHistoryResponse,
    StockUpdate,
)

router = APIRouter()


def _item(item, ledger) -> dict:
    return InventoryItemResponse.from_item(item, ledger.today()).model_dump(mode="json")


@router.get("")
def list_inventory(
    ledger: InventoryLedger,
    current_user: CurrentUser,
    category: Optional[InventoryCategory] = None,
    stock_status: Optional[StockStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    items, total = ledger.list_items(category, stock_status, search, page, limit)
    return paginated_response("items", [_item(i, ledger) for i in items], total, page, limit)


@router.get("/alerts/low-stock")
def low_stock_alerts(ledger: InventoryLedger, current_user: CurrentUser):
    items = ledger.low_stock_items()
    return success_response({"items": [_item(i, ledger) for i in items], "count": len(items)})


@router.get("/alerts/expiring")
def expiring_alerts(
    ledger: InventoryLedger,
    current_user: CurrentUser,
    days: int = Query(7, ge=0, le=365),
):
    """Items whose expiry date falls within the next ``days`` days."""
    items = ledger.expiring_items(days)
    return success_response({"items": [_item(i, ledger) for i in items], "count": len(items), "days": days})


@router.get("/{item_id}")
def get_inventory_item(item_id: int, ledger: InventoryLedger, current_user: CurrentUser):
    return success_response({"item": _item(ledger.get_item(item_id), ledger)})


@router.get("/{item_id}/history")
def get_stock_history(item_id: int, ledger: InventoryLedger, current_user: CurrentUser):
    history = ledger.history(item_id)
    return success_response({
        "history": [StockHistoryResponse.model_validate(h).model_dump(mode="json") for h in history],
    })


@router.post("", status_code=201)
def create_inventory_item(body: InventoryItemCreate, ledger: InventoryLedger, current_user: RequireManager):
    item = ledger.create_item(body.model_dump(), current_user)
    return success_response({"item": _item(item, ledger)}, "Inventory item created successfully")


@router.put("/{item_id}")
def update_inventory_item(
    item_id: int, body: InventoryItemUpdate, ledger: InventoryLedger, current_user: RequireManager,
):
    item = ledger.update_item(item_id, body.model_dump(exclude_unset=True), current_user)
    return success_response({"item": _item(item, ledger)}, "Inventory item updated successfully")


@router.delete("/{item_id}")
def delete_inventory_item(item_id: int, ledger: InventoryLedger, current_user: RequireManager):
    ledger.delete_item(item_id, current_user)
    return success_response(None, "Inventory item deleted successfully")


@router.put("/{item_id}/stock")
def update_stock(item_id: int, body: StockUpdate, ledger: InventoryLedger, current_user: CurrentUser):
    """Record a restock, usage, waste or counted adjustment."""
    item = ledger.adjust_stock(item_id, body.action, body.quantity, body.reason, current_user)
    return success_response({"item": _item(item, ledger)}, "Stock updated successfully")
