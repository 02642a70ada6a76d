"""Dining table and maintenance log models."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from restaurant_pos.db.base import Base, TimestampMixin
from restaurant_pos.models.validators import within

MAX_TABLE_CAPACITY = 20


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class TableShape(str, enum.Enum):
    SQUARE = "square"
    RECTANGULAR = "rectangular"
    ROUND = "round"
    BAR = "bar"


class TableLocation(str, enum.Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    PRIVATE = "private"
    BAR = "bar"


class MaintenanceStatus(str, enum.Enum):
    REPORTED = "reported"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class RestaurantTable(Base, TimestampMixin):
    """A physical table on the floor.

    ``current_order_id`` and ``current_reservation_id`` are weak references:
    the table owns neither record, so they carry no foreign key.
    ``occupied_by`` holds ``{customer_name, party_size, contact, reservation_id}``
    while the table is occupied.
    """

    __tablename__ = "restaurant_tables"

    id: Mapped[int] = mapped_column(primary_key=True)
    table_number: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TableStatus] = mapped_column(
        Enum(TableStatus), default=TableStatus.AVAILABLE, nullable=False, index=True,
    )
    shape: Mapped[TableShape] = mapped_column(Enum(TableShape), default=TableShape.SQUARE, nullable=False)
    location: Mapped[TableLocation] = mapped_column(
        Enum(TableLocation), default=TableLocation.INDOOR, nullable=False,
    )
    features: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    current_order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    current_reservation_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    occupied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    occupied_by: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    last_cleaned: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    maintenance_history: Mapped[List["TableMaintenanceEntry"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="TableMaintenanceEntry.id",
    )

    __mapper_args__ = {"version_id_col": version}

    @validates("capacity")
    def _validate_capacity(self, key, value):
        return within(key, value, 1, MAX_TABLE_CAPACITY)

    @property
    def open_maintenance(self) -> List["TableMaintenanceEntry"]:
        return [e for e in self.maintenance_history if e.status != MaintenanceStatus.RESOLVED]

    @property
    def occupant_reservation_id(self) -> Optional[int]:
        if self.occupied_by:
            return self.occupied_by.get("reservation_id")
        return None

    def __repr__(self) -> str:
        return f"<RestaurantTable {self.table_number} {self.status.value}>"


class TableMaintenanceEntry(Base):
    __tablename__ = "table_maintenance"

    id: Mapped[int] = mapped_column(primary_key=True)
    table_id: Mapped[int] = mapped_column(
        ForeignKey("restaurant_tables.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    issue: Mapped[str] = mapped_column(Text, nullable=False)
    reported_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[MaintenanceStatus] = mapped_column(
        Enum(MaintenanceStatus), default=MaintenanceStatus.REPORTED, nullable=False,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    table: Mapped[RestaurantTable] = relationship(back_populates="maintenance_history")
