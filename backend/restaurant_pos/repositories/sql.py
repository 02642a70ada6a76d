"""SQLAlchemy implementations of the persistence ports."""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from restaurant_pos.core.exceptions import ConflictError
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
from restaurant_pos.models.reservation import ACTIVE_RESERVATION_STATUSES

logger = logging.getLogger(__name__)


class _SqlRepository:
    model = None

    def __init__(self, db: Session):
        self.db = db

    def get(self, entity_id: int):
        return self.db.get(self.model, entity_id)

    def get_for_update(self, entity_id: int):
        # populate_existing re-reads a row already held in the identity map
        stmt = (
            select(self.model)
            .where(self.model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(self.model))

    def add(self, entity) -> None:
        self.db.add(entity)

    def delete(self, entity) -> None:
        self.db.delete(entity)

    def _page(self, stmt, offset: int, limit: int):
        total = self.db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
        items = list(self.db.scalars(stmt.offset(offset).limit(limit)))
        return items, total


class SqlTableRepository(_SqlRepository):
    model = RestaurantTable

    def get_by_number(self, table_number: str, for_update: bool = False) -> Optional[RestaurantTable]:
        stmt = select(RestaurantTable).where(RestaurantTable.table_number == table_number)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def list(self, status: Optional[TableStatus] = None, min_capacity: Optional[int] = None) -> List[RestaurantTable]:
        stmt = select(RestaurantTable).order_by(RestaurantTable.id)
        if status is not None:
            stmt = stmt.where(RestaurantTable.status == status)
        if min_capacity is not None:
            stmt = stmt.where(RestaurantTable.capacity >= min_capacity)
        return list(self.db.scalars(stmt))


class SqlReservationRepository(_SqlRepository):
    model = Reservation

    def active_for_table(
        self, table_id: int, on_date: date, exclude_id: Optional[int] = None,
    ) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.table_id == table_id,
            Reservation.date == on_date,
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
        )
        if exclude_id is not None:
            stmt = stmt.where(Reservation.id != exclude_id)
        return list(self.db.scalars(stmt.order_by(Reservation.time)))

    def active_on(self, on_date: date) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.date == on_date,
            Reservation.status.in_(ACTIVE_RESERVATION_STATUSES),
        )
        return list(self.db.scalars(stmt))

    def exists_for_table(self, table_id: int) -> bool:
        stmt = select(Reservation.id).where(Reservation.table_id == table_id).limit(1)
        return self.db.scalar(stmt) is not None

    def search(
        self,
        status: Optional[ReservationStatus] = None,
        on_date: Optional[date] = None,
        table_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Reservation], int]:
        stmt = select(Reservation).order_by(Reservation.date, Reservation.time, Reservation.id)
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        if on_date is not None:
            stmt = stmt.where(Reservation.date == on_date)
        if table_id is not None:
            stmt = stmt.where(Reservation.table_id == table_id)
        return self._page(stmt, offset, limit)


class SqlMenuItemRepository(_SqlRepository):
    model = MenuItem

    def get_many(self, menu_item_ids: Sequence[int]) -> List[MenuItem]:
        if not menu_item_ids:
            return []
        return list(self.db.scalars(select(MenuItem).where(MenuItem.id.in_(set(menu_item_ids)))))

    def list(self, category: Optional[str] = None, available: Optional[bool] = None) -> List[MenuItem]:
        stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if category:
            stmt = stmt.where(MenuItem.category == category)
        if available is not None:
            stmt = stmt.where(MenuItem.available == available)
        return list(self.db.scalars(stmt))


class SqlOrderRepository(_SqlRepository):
    model = Order

    def search(
        self,
        statuses: Optional[Sequence[OrderStatus]] = None,
        order_type: Optional[OrderType] = None,
        cashier_id: Optional[int] = None,
        on_date: Optional[date] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if statuses:
            stmt = stmt.where(Order.status.in_(list(statuses)))
        if order_type is not None:
            stmt = stmt.where(Order.order_type == order_type)
        if cashier_id is not None:
            stmt = stmt.where(Order.cashier_id == cashier_id)
        if on_date is not None:
            start = datetime.combine(on_date, time.min)
            stmt = stmt.where(Order.created_at >= start, Order.created_at < start + timedelta(days=1))
        return self._page(stmt, offset, limit)

    def kitchen_queue(self, statuses: Sequence[OrderStatus]) -> List[Order]:
        stmt = (
            select(Order)
            .where(Order.status.in_(list(statuses)))
            .order_by(Order.created_at, Order.id)
        )
        return list(self.db.scalars(stmt))


class SqlInventoryRepository(_SqlRepository):
    model = InventoryItem

    def get_by_barcode(self, barcode: str) -> Optional[InventoryItem]:
        return self.db.execute(
            select(InventoryItem).where(InventoryItem.barcode == barcode)
        ).scalar_one_or_none()

    def search(
        self,
        category: Optional[InventoryCategory] = None,
        search: Optional[str] = None,
    ) -> List[InventoryItem]:
        stmt = select(InventoryItem).order_by(InventoryItem.name, InventoryItem.id)
        if category is not None:
            stmt = stmt.where(InventoryItem.category == category)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                InventoryItem.name.ilike(pattern),
                InventoryItem.description.ilike(pattern),
                InventoryItem.barcode.ilike(pattern),
            ))
        return list(self.db.scalars(stmt))

    def low_stock(self) -> List[InventoryItem]:
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.current_stock <= InventoryItem.min_stock)
            .order_by(InventoryItem.name)
        )
        return list(self.db.scalars(stmt))

    def with_expiry_between(self, start: date, end: date) -> List[InventoryItem]:
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.expiry_date.is_not(None))
            .where(InventoryItem.expiry_date >= start, InventoryItem.expiry_date <= end)
            .order_by(InventoryItem.expiry_date, InventoryItem.name)
        )
        return list(self.db.scalars(stmt))


class SqlUnitOfWork:
    """Session-backed transaction boundary.

    A stale optimistic version or a violated unique key at commit time means
    another request changed the same records first; both surface as
    ConflictError after the session is rolled back.
    """

    def __init__(self, db: Session):
        self.db = db

    def __enter__(self) -> "SqlUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.db.commit()
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                raise self._translate(e) from e
            return None
        self.db.rollback()
        if issubclass(exc_type, (StaleDataError, IntegrityError)):
            raise self._translate(exc) from exc
        return None

    def flush(self) -> None:
        self.db.flush()

    @staticmethod
    def _translate(exc: Exception) -> ConflictError:
        if isinstance(exc, IntegrityError):
            logger.warning(f"Write rejected by a database constraint: {exc.orig}")
            return ConflictError("The change conflicts with existing records")
        logger.warning(f"Concurrent modification detected: {exc}")
        return ConflictError("The record was modified by another request; reload and retry")
