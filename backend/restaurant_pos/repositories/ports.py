"""Persistence and notification ports the engines depend on.

The engines only see these protocols; ``restaurant_pos.repositories.sql``
provides the SQLAlchemy implementations used by the API.
"""

from datetime import date
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from restaurant_pos.core.rbac import TokenData
from restaurant_pos.models import (
    InventoryCategory,
    InventoryItem,
    MenuItem,
    Order,
    OrderStatus,
    OrderType,
    Reservation,
    ReservationStatus,
    RestaurantTable,
    TableStatus,
)


class TableRepository(Protocol):
    def get(self, table_id: int) -> Optional[RestaurantTable]: ...

    def get_for_update(self, table_id: int) -> Optional[RestaurantTable]:
        """Load the current row state and hold a write lock until commit."""
        ...

    def get_by_number(self, table_number: str, for_update: bool = False) -> Optional[RestaurantTable]: ...

    def list(self, status: Optional[TableStatus] = None, min_capacity: Optional[int] = None) -> List[RestaurantTable]: ...

    def count(self) -> int: ...

    def add(self, table: RestaurantTable) -> None: ...

    def delete(self, table: RestaurantTable) -> None: ...


class ReservationRepository(Protocol):
    def get(self, reservation_id: int) -> Optional[Reservation]: ...

    def get_for_update(self, reservation_id: int) -> Optional[Reservation]: ...

    def active_for_table(
        self, table_id: int, on_date: date, exclude_id: Optional[int] = None,
    ) -> List[Reservation]:
        """Confirmed and seated reservations of one table on one date."""
        ...

    def active_on(self, on_date: date) -> List[Reservation]: ...

    def exists_for_table(self, table_id: int) -> bool: ...

    def search(
        self,
        status: Optional[ReservationStatus] = None,
        on_date: Optional[date] = None,
        table_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Reservation], int]: ...

    def count(self) -> int: ...

    def add(self, reservation: Reservation) -> None: ...

    def delete(self, reservation: Reservation) -> None: ...


class MenuItemRepository(Protocol):
    def get(self, menu_item_id: int) -> Optional[MenuItem]: ...

    def get_many(self, menu_item_ids: Sequence[int]) -> List[MenuItem]: ...


class OrderRepository(Protocol):
    def get(self, order_id: int) -> Optional[Order]: ...

    def get_for_update(self, order_id: int) -> Optional[Order]: ...

    def search(
        self,
        statuses: Optional[Sequence[OrderStatus]] = None,
        order_type: Optional[OrderType] = None,
        cashier_id: Optional[int] = None,
        on_date: Optional[date] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Newest first."""
        ...

    def kitchen_queue(self, statuses: Sequence[OrderStatus]) -> List[Order]:
        """Oldest first."""
        ...

    def count(self) -> int: ...

    def add(self, order: Order) -> None: ...

    def delete(self, order: Order) -> None: ...


class InventoryRepository(Protocol):
    def get(self, item_id: int) -> Optional[InventoryItem]: ...

    def get_for_update(self, item_id: int) -> Optional[InventoryItem]: ...

    def get_by_barcode(self, barcode: str) -> Optional[InventoryItem]: ...

    def search(
        self,
        category: Optional[InventoryCategory] = None,
        search: Optional[str] = None,
    ) -> List[InventoryItem]: ...

    def low_stock(self) -> List[InventoryItem]: ...

    def with_expiry_between(self, start: date, end: date) -> List[InventoryItem]: ...

    def add(self, item: InventoryItem) -> None: ...

    def delete(self, item: InventoryItem) -> None: ...


class UnitOfWork(Protocol):
    """Transaction boundary.

    Used as a context manager: commits when the block succeeds, rolls back
    and re-raises when it fails.
    """

    def __enter__(self) -> "UnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...

    def flush(self) -> None: ...


class Notifier(Protocol):
    def publish(
        self, event: str, entity: Any, actor: Optional[TokenData], audiences: Sequence[str],
    ) -> None:
        """Fire-and-forget delivery; implementations must never raise."""
        ...
