"""Menu item routes."""

import logging
from typing import Optional

from fastapi import APIRouter
from sqlalchemy import select

from restaurant_pos.core.exceptions import NotFoundError
from restaurant_pos.core.rbac import CurrentUser, RequireKitchenView, RequireManager
from restaurant_pos.core.responses import success_response
from restaurant_pos.db.session import DbSession
from restaurant_pos.models.menu import MenuItem
from restaurant_pos.repositories.sql import SqlMenuItemRepository, SqlUnitOfWork
from restaurant_pos.schemas.menu import MenuItemCreate, MenuItemResponse, MenuItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _menu_item(item: MenuItem) -> dict:
    return MenuItemResponse.model_validate(item).model_dump(mode="json")


def _get_or_404(db: DbSession, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if not item:
        raise NotFoundError("Menu item", item_id)
    return item


@router.get("")
def list_menu_items(
    db: DbSession,
    current_user: CurrentUser,
    category: Optional[str] = None,
    available: Optional[bool] = None,
):
    items = SqlMenuItemRepository(db).list(category=category, available=available)
    return success_response({"items": [_menu_item(i) for i in items], "count": len(items)})


@router.get("/categories")
def list_categories(db: DbSession, current_user: CurrentUser):
    categories = db.scalars(select(MenuItem.category).distinct().order_by(MenuItem.category)).all()
    return success_response({"categories": list(categories)})


@router.get("/{item_id}")
def get_menu_item(item_id: int, db: DbSession, current_user: CurrentUser):
    return success_response({"item": _menu_item(_get_or_404(db, item_id))})


@router.post("", status_code=201)
def create_menu_item(body: MenuItemCreate, db: DbSession, current_user: RequireManager):
    item = MenuItem(**body.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return success_response({"item": _menu_item(item)}, "Menu item created successfully")


@router.put("/{item_id}")
def update_menu_item(item_id: int, body: MenuItemUpdate, db: DbSession, current_user: RequireManager):
    item = _get_or_404(db, item_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return success_response({"item": _menu_item(item)}, "Menu item updated successfully")


@router.put("/{item_id}/availability")
def toggle_availability(item_id: int, db: DbSession, current_user: RequireKitchenView):
    """Switch an item on or off; ordering a switched-off item is refused."""
    with SqlUnitOfWork(db):
        item = SqlMenuItemRepository(db).get_for_update(item_id)
        if item is None:
            raise NotFoundError("Menu item", item_id)
        item.available = not item.available
    db.refresh(item)
    state = "enabled" if item.available else "disabled"
    logger.info(f"Menu item {item.name} {state} by {current_user.name}")
    return success_response({"item": _menu_item(item)}, f"Menu item {state}")


@router.delete("/{item_id}")
def delete_menu_item(item_id: int, db: DbSession, current_user: RequireManager):
    # order lines keep a foreign key to the item, so a sold item cannot go
    with SqlUnitOfWork(db):
        db.delete(_get_or_404(db, item_id))
    return success_response(None, "Menu item deleted successfully")
