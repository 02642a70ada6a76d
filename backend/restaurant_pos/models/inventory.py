"""Inventory item and stock ledger models."""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from restaurant_pos.db.base import Base, TimestampMixin
from restaurant_pos.models.validators import non_negative


class InventoryCategory(str, enum.Enum):
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    MEAT = "meat"
    DAIRY = "dairy"
    GRAINS = "grains"
    BEVERAGES = "beverages"
    SPICES = "spices"
    CLEANING = "cleaning"
    OTHER = "other"


class InventoryUnit(str, enum.Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECES = "pieces"
    BOXES = "boxes"
    BOTTLES = "bottles"


class StockAction(str, enum.Enum):
    """Stock ledger actions.

    RESTOCK, USAGE and WASTE carry a delta. ADJUSTMENT carries the absolute
    count found on the shelf and replaces the current stock with it.
    """

    RESTOCK = "restock"
    USAGE = "usage"
    WASTE = "waste"
    ADJUSTMENT = "adjustment"


class StockStatus(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


def classify_stock(current: Decimal, minimum: Decimal, maximum: Decimal) -> StockStatus:
    if current <= minimum:
        return StockStatus.LOW
    if current >= maximum:
        return StockStatus.HIGH
    return StockStatus.NORMAL


class InventoryItem(Base, TimestampMixin):
    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[InventoryCategory] = mapped_column(Enum(InventoryCategory), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)

    current_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    max_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[InventoryUnit] = mapped_column(Enum(InventoryUnit), nullable=False)
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)

    supplier_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    supplier_contact: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    supplier_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    supplier_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    storage_location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    low_stock_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    stock_history: Mapped[List["StockHistoryEntry"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", order_by="StockHistoryEntry.id",
    )

    __mapper_args__ = {"version_id_col": version}

    @validates("current_stock", "min_stock", "max_stock", "cost_per_unit")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)

    @property
    def stock_status(self) -> StockStatus:
        return classify_stock(self.current_stock, self.min_stock, self.max_stock)

    @property
    def total_value(self) -> Decimal:
        return self.current_stock * self.cost_per_unit

    def days_until_expiry(self, today: date) -> Optional[int]:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days

    def __repr__(self) -> str:
        return f"<InventoryItem {self.name} {self.current_stock} {self.unit.value}>"


class StockHistoryEntry(Base):
    """Append-only stock ledger row."""

    __tablename__ = "inventory_stock_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    action: Mapped[StockAction] = mapped_column(Enum(StockAction), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    performed_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    performed_by_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    item: Mapped[InventoryItem] = relationship(back_populates="stock_history")
