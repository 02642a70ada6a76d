"""Reservation model."""

from __future__ import annotations

import enum
from datetime import date as date_type, datetime, time as time_type, timedelta
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from restaurant_pos.db.base import Base, TimestampMixin
from restaurant_pos.models.table import RestaurantTable
from restaurant_pos.models.validators import within

MIN_DURATION = 30
MAX_DURATION = 480
MAX_PARTY_SIZE = 20


class ReservationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Statuses that hold a table slot and take part in conflict detection.
ACTIVE_RESERVATION_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.SEATED)

TERMINAL_RESERVATION_STATUSES = (
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
)


class Occasion(str, enum.Enum):
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    BUSINESS = "business"
    DATE = "date"
    OTHER = "other"


def parse_hhmm(value: str) -> time_type:
    """Parse a 24h ``HH:MM`` string."""
    hours, minutes = value.split(":")
    return time_type(int(hours), int(minutes))


def booking_window(on_date: date_type, start: str, duration: int) -> tuple[datetime, datetime]:
    """Return the half-open ``[start, end)`` interval of a booking.

    Reservation times carry no timezone; both ends are naive wall-clock
    datetimes in restaurant-local time.
    """
    begin = datetime.combine(on_date, parse_hhmm(start))
    return begin, begin + timedelta(minutes=duration)


def windows_overlap(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return a[0] < b[1] and b[0] < a[1]


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    reservation_number: Mapped[str] = mapped_column(String(40), unique=True, index=True, nullable=False)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)

    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=120, nullable=False)

    table_id: Mapped[int] = mapped_column(ForeignKey("restaurant_tables.id"), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus), default=ReservationStatus.CONFIRMED, nullable=False, index=True,
    )
    occasion: Mapped[Optional[Occasion]] = mapped_column(Enum(Occasion), nullable=True)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    seated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    table: Mapped[RestaurantTable] = relationship()

    __table_args__ = (
        Index("ix_reservations_table_date", "table_id", "date"),
    )
    __mapper_args__ = {"version_id_col": version}

    @validates("party_size")
    def _validate_party_size(self, key, value):
        return within(key, value, 1, MAX_PARTY_SIZE)

    @validates("duration")
    def _validate_duration(self, key, value):
        return within(key, value, MIN_DURATION, MAX_DURATION)

    @property
    def window(self) -> tuple[datetime, datetime]:
        return booking_window(self.date, self.time, self.duration)

    @property
    def end_time(self) -> str:
        return self.window[1].strftime("%H:%M")

    @property
    def crosses_midnight(self) -> bool:
        """True when the booking runs past the end of its own date.

        Conflict detection only compares bookings on the same date, so such a
        booking is not checked against the next morning's reservations.
        """
        return self.window[1].date() > self.date

    @property
    def table_number(self) -> Optional[str]:
        return self.table.table_number if self.table is not None else None

    def __repr__(self) -> str:
        return f"<Reservation {self.reservation_number} {self.status.value}>"
