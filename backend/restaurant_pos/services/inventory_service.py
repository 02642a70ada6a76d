"""Inventory ledger.

Stock only changes through :meth:`InventoryService.adjust_stock`, which
appends a history row for every movement. ``restock``, ``usage`` and
``waste`` are deltas; ``adjustment`` records a physical count and replaces
the current stock with it. Stock never goes below zero.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from restaurant_pos.core.exceptions import NotFoundError, ValidationError
from restaurant_pos.core.rbac import TokenData
from restaurant_pos.core.timeutils import Clock, local_today, utcnow
from restaurant_pos.models.inventory import (
    InventoryCategory,
    InventoryItem,
    StockAction,
    StockHistoryEntry,
    StockStatus,
)
from restaurant_pos.repositories.ports import InventoryRepository, Notifier, UnitOfWork
from restaurant_pos.services.notification_service import MANAGER_AUDIENCES

logger = logging.getLogger(__name__)

DELTA_ACTIONS = (StockAction.RESTOCK, StockAction.USAGE, StockAction.WASTE)
SUPPLIER_FIELDS = ("name", "contact", "email", "phone")


def apply_stock_action(current: Decimal, action: StockAction, quantity: Decimal) -> Decimal:
    """New stock level after one ledger action, clamped at zero."""
    if action == StockAction.RESTOCK:
        result = current + quantity
    elif action in (StockAction.USAGE, StockAction.WASTE):
        result = current - quantity
    else:
        result = quantity
    return max(result, Decimal("0"))


class InventoryService:
    def __init__(
        self,
        items: InventoryRepository,
        uow: UnitOfWork,
        notifier: Notifier,
        clock: Clock = utcnow,
        tz_name: str = "UTC",
    ):
        self.items = items
        self.uow = uow
        self.notifier = notifier
        self.clock = clock
        self.tz_name = tz_name

    def today(self) -> date:
        return local_today(self.clock(), self.tz_name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_items(
        self,
        category: Optional[InventoryCategory] = None,
        stock_status: Optional[StockStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[InventoryItem], int]:
        items = self.items.search(category=category, search=search)
        if stock_status is not None:
            items = [item for item in items if item.stock_status == stock_status]
        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def low_stock_items(self) -> List[InventoryItem]:
        return self.items.low_stock()

    def expiring_items(self, within_days: int = 7) -> List[InventoryItem]:
        """Items expiring today or within the next ``within_days`` days."""
        if within_days < 0:
            raise ValidationError("days must not be negative", field="days")
        today = self.today()
        return self.items.with_expiry_between(today, today + timedelta(days=within_days))

    def history(self, item_id: int) -> List[StockHistoryEntry]:
        return list(reversed(self.get_item(item_id).stock_history))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_item(self, data: Dict[str, Any], actor: TokenData) -> InventoryItem:
        data = dict(data)
        supplier = data.pop("supplier", None) or {}
        self._check_thresholds(data.get("min_stock", Decimal("0")), data["max_stock"])
        with self.uow:
            self._ensure_unique_barcode(data.get("barcode"))
            item = InventoryItem(**data)
            self._apply_supplier(item, supplier)
            if item.current_stock and item.current_stock > 0:
                item.last_restocked = self.clock()
                item.stock_history.append(self._entry(
                    StockAction.RESTOCK, item.current_stock, "Initial stock", actor,
                ))
            self.items.add(item)
        logger.info(f"Inventory item {item.name} created by {actor.name}")
        return item

    def update_item(self, item_id: int, patch: Dict[str, Any], actor: TokenData) -> InventoryItem:
        patch = dict(patch)
        if "current_stock" in patch:
            raise ValidationError(
                "Current stock changes through stock updates only", field="current_stock",
            )
        supplier = patch.pop("supplier", None)
        with self.uow:
            item = self._lock(item_id)
            self._check_thresholds(
                patch.get("min_stock") if patch.get("min_stock") is not None else item.min_stock,
                patch.get("max_stock") if patch.get("max_stock") is not None else item.max_stock,
            )
            if patch.get("barcode") and patch["barcode"] != item.barcode:
                self._ensure_unique_barcode(patch["barcode"])
            for field, value in patch.items():
                if value is not None or field in ("expiry_date", "barcode", "description", "storage_location"):
                    setattr(item, field, value)
            if supplier is not None:
                self._apply_supplier(item, supplier)
        logger.info(f"Inventory item {item.name} updated by {actor.name}")
        return item

    def delete_item(self, item_id: int, actor: TokenData) -> None:
        with self.uow:
            item = self._lock(item_id)
            name = item.name
            self.items.delete(item)
        logger.info(f"Inventory item {name} deleted by {actor.name}")

    def adjust_stock(
        self,
        item_id: int,
        action: StockAction,
        quantity: Decimal,
        reason: Optional[str],
        actor: TokenData,
    ) -> InventoryItem:
        quantity = Decimal(str(quantity))
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative", field="quantity")
        if action in DELTA_ACTIONS and quantity == 0:
            raise ValidationError(f"A {action.value} needs a quantity above zero", field="quantity")

        with self.uow:
            item = self._lock(item_id)
            before = item.current_stock
            item.current_stock = apply_stock_action(before, action, quantity)
            if action == StockAction.RESTOCK:
                item.last_restocked = self.clock()
            item.stock_history.append(self._entry(action, quantity, reason, actor))

        logger.info(
            f"Stock {action.value} on {item.name}: {before} -> {item.current_stock} {item.unit.value} "
            f"by {actor.name}"
        )
        if item.stock_status == StockStatus.LOW and item.low_stock_alerts:
            logger.warning(f"Low stock: {item.name} at {item.current_stock} (minimum {item.min_stock})")
            self.notifier.publish("inventory:low_stock_alert", item, actor, MANAGER_AUDIENCES)
        return item

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, item_id: int) -> InventoryItem:
        item = self.items.get_for_update(item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def _entry(self, action: StockAction, quantity: Decimal, reason: Optional[str], actor: TokenData):
        return StockHistoryEntry(
            action=action,
            quantity=quantity,
            reason=reason,
            performed_by=actor.user_id,
            performed_by_name=actor.name,
            timestamp=self.clock(),
        )

    @staticmethod
    def _check_thresholds(min_stock, max_stock) -> None:
        if Decimal(str(min_stock)) > Decimal(str(max_stock)):
            raise ValidationError(
                "Minimum stock cannot exceed maximum stock",
                errors=[
                    {"field": "min_stock", "message": "Must not exceed max_stock"},
                    {"field": "max_stock", "message": "Must not be below min_stock"},
                ],
            )

    def _ensure_unique_barcode(self, barcode: Optional[str]) -> None:
        if barcode and self.items.get_by_barcode(barcode) is not None:
            raise ValidationError(f"Barcode {barcode} is already in use", field="barcode")

    @staticmethod
    def _apply_supplier(item: InventoryItem, supplier: Dict[str, Any]) -> None:
        for key in SUPPLIER_FIELDS:
            if key in supplier:
                setattr(item, f"supplier_{key}", supplier[key])
