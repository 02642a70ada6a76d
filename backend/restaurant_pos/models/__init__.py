"""SQLAlchemy models."""

from restaurant_pos.models.user import User, UserStatus
from restaurant_pos.models.menu import MenuItem
from restaurant_pos.models.table import (
    RestaurantTable,
    TableMaintenanceEntry,
    TableStatus,
    TableShape,
    TableLocation,
    MaintenanceStatus,
)
from restaurant_pos.models.reservation import (
    Reservation,
    ReservationStatus,
    Occasion,
)
from restaurant_pos.models.order import (
    Order,
    OrderItem,
    OrderStatusEntry,
    OrderStatus,
    OrderType,
)
from restaurant_pos.models.inventory import (
    InventoryItem,
    StockHistoryEntry,
    InventoryCategory,
    InventoryUnit,
    StockAction,
    StockStatus,
)

__all__ = [
    "User", "UserStatus",
    "MenuItem",
    "RestaurantTable", "TableMaintenanceEntry", "TableStatus", "TableShape",
    "TableLocation", "MaintenanceStatus",
    "Reservation", "ReservationStatus", "Occasion",
    "Order", "OrderItem", "OrderStatusEntry", "OrderStatus", "OrderType",
    "InventoryItem", "StockHistoryEntry", "InventoryCategory", "InventoryUnit",
    "StockAction", "StockStatus",
]
