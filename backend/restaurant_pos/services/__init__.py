# Services module

from restaurant_pos.services.table_service import TableService
from restaurant_pos.services.reservation_service import ReservationService
from restaurant_pos.services.order_service import OrderService, price_order
from restaurant_pos.services.inventory_service import InventoryService, apply_stock_action
from restaurant_pos.services.notification_service import EventBroadcaster, broadcaster

__all__ = [
    "TableService",
    "ReservationService",
    "OrderService",
    "price_order",
    "InventoryService",
    "apply_stock_action",
    "EventBroadcaster",
    "broadcaster",
]
