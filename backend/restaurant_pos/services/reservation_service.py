"""Reservation scheduler.

Bookings are half-open intervals ``[date + time, date + time + duration)``.
Two confirmed or seated bookings of the same table on the same date may not
overlap; a booking that ends at 20:00 and one that starts at 20:00 do not.

Every write that can create an overlap first locks the target table row and
then runs conflict detection inside the same transaction. The table row is
also written (its version bumps), so two requests racing for one table
cannot both commit even on databases without row locks.

Times are bare restaurant-local wall-clock values and bookings are compared
on their own date only. A booking running past midnight is accepted but is
not checked against the next day's bookings; it is logged when created.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from restaurant_pos.core.exceptions import (
    CapacityError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from restaurant_pos.core.rbac import TokenData
from restaurant_pos.core.timeutils import Clock, local_today, utcnow
from restaurant_pos.models.reservation import (
    TERMINAL_RESERVATION_STATUSES,
    Reservation,
    ReservationStatus,
    booking_window,
    windows_overlap,
)
from restaurant_pos.models.table import RestaurantTable, TableStatus
from restaurant_pos.repositories.ports import Notifier, ReservationRepository, UnitOfWork
from restaurant_pos.services.notification_service import FLOOR_AUDIENCES
from restaurant_pos.services.numbering import document_number
from restaurant_pos.services.table_service import TableService

logger = logging.getLogger(__name__)

SCHEDULING_FIELDS = ("table_id", "date", "time", "duration")
NULLABLE_FIELDS = ("customer_email", "occasion", "special_requests", "notes")


class ReservationService:
    def __init__(
        self,
        reservations: ReservationRepository,
        table_engine: TableService,
        uow: UnitOfWork,
        notifier: Notifier,
        clock: Clock = utcnow,
        tz_name: str = "UTC",
        number_prefix: str = "RES",
        default_duration: int = 120,
    ):
        self.reservations = reservations
        self.table_engine = table_engine
        self.uow = uow
        self.notifier = notifier
        self.clock = clock
        self.tz_name = tz_name
        self.number_prefix = number_prefix
        self.default_duration = default_duration

    def today(self) -> date:
        return local_today(self.clock(), self.tz_name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        on_date: Optional[date] = None,
        table_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Reservation], int]:
        return self.reservations.search(
            status=status, on_date=on_date, table_id=table_id,
            offset=(page - 1) * limit, limit=limit,
        )

    def get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.reservations.get(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    def find_conflicts(
        self,
        table_id: int,
        on_date: date,
        start: str,
        duration: int,
        exclude_id: Optional[int] = None,
    ) -> List[Reservation]:
        """Active bookings of the table on that date overlapping the window."""
        window = booking_window(on_date, start, duration)
        return [
            existing
            for existing in self.reservations.active_for_table(table_id, on_date, exclude_id=exclude_id)
            if windows_overlap(existing.window, window)
        ]

    def find_available_tables(
        self,
        on_date: date,
        start: str,
        duration: Optional[int] = None,
        party_size: Optional[int] = None,
    ) -> List[RestaurantTable]:
        """Tables big enough for the party with no booking overlapping the window."""
        window = booking_window(on_date, start, duration or self.default_duration)
        booked = defaultdict(list)
        for existing in self.reservations.active_on(on_date):
            booked[existing.table_id].append(existing.window)
        return [
            table
            for table in self.table_engine.tables.list(min_capacity=party_size)
            if not any(windows_overlap(window, other) for other in booked[table.id])
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], actor: TokenData) -> Reservation:
        data = dict(data)
        if data.get("duration") is None:
            data["duration"] = self.default_duration
        touched_table = False
        with self.uow:
            table = self.table_engine.lock_table(data["table_id"])
            self._check_capacity(data["party_size"], table)
            self._ensure_no_conflict(table, data["date"], data["time"], data["duration"])

            now = self.clock()
            reservation = Reservation(
                reservation_number=document_number(self.number_prefix, self.reservations.count() + 1, now),
                status=ReservationStatus.CONFIRMED,
                created_by=actor.user_id,
                **data,
            )
            reservation.table = table
            self.reservations.add(reservation)
            self.uow.flush()

            if reservation.date == self.today() and table.status == TableStatus.AVAILABLE:
                touched_table = self.table_engine.mark_reserved(table, reservation.id)
            else:
                table.updated_at = now

        if reservation.crosses_midnight:
            logger.warning(
                f"Reservation {reservation.reservation_number} runs past midnight "
                f"({reservation.time} + {reservation.duration} min); next-day overlaps are not checked"
            )
        logger.info(
            f"Reservation {reservation.reservation_number} created for {reservation.customer_name} "
            f"on table {table.table_number} {reservation.date} {reservation.time}-{reservation.end_time}"
        )
        self.notifier.publish("reservation:created", reservation, actor, FLOOR_AUDIENCES)
        if touched_table:
            self.table_engine.announce(table, actor)
        return reservation

    def update(self, reservation_id: int, patch: Dict[str, Any], actor: TokenData) -> Reservation:
        patch = {k: v for k, v in patch.items() if v is not None or k in NULLABLE_FIELDS}
        changed_tables: List[RestaurantTable] = []
        with self.uow:
            reservation = self._lock(reservation_id)
            if reservation.status in TERMINAL_RESERVATION_STATUSES:
                raise InvalidStateError(
                    f"Reservation {reservation.reservation_number} is {reservation.status.value} "
                    "and can no longer be changed",
                    current_status=reservation.status.value,
                )

            rescheduled = any(
                field in patch and patch[field] != getattr(reservation, field)
                for field in SCHEDULING_FIELDS
            )
            moved = any(
                field in patch and patch[field] != getattr(reservation, field)
                for field in ("table_id", "date")
            )
            if moved and reservation.status == ReservationStatus.SEATED:
                raise InvalidStateError(
                    "A seated reservation cannot move to another table or date",
                    current_status=reservation.status.value,
                )

            old_table = self.table_engine.lock_table(reservation.table_id)
            new_table = old_table
            if patch.get("table_id", old_table.id) != old_table.id:
                new_table = self.table_engine.lock_table(patch["table_id"])

            self._check_capacity(patch.get("party_size", reservation.party_size), new_table)
            if rescheduled:
                self._ensure_no_conflict(
                    new_table,
                    patch.get("date", reservation.date),
                    patch.get("time", reservation.time),
                    patch.get("duration", reservation.duration),
                    exclude_id=reservation.id,
                )
                new_table.updated_at = self.clock()

            for field, value in patch.items():
                setattr(reservation, field, value)
            if new_table is not old_table:
                reservation.table = new_table

            if moved and reservation.status == ReservationStatus.CONFIRMED:
                changed_tables = self._move_hold(reservation, old_table, new_table)

        logger.info(f"Reservation {reservation.reservation_number} updated by {actor.name}")
        self.notifier.publish("reservation:updated", reservation, actor, FLOOR_AUDIENCES)
        for table in changed_tables:
            self.table_engine.announce(table, actor)
        return reservation

    def seat(self, reservation_id: int, actor: TokenData) -> Reservation:
        with self.uow:
            reservation = self._lock(reservation_id)
            self._require_status(reservation, ReservationStatus.SEATED, ReservationStatus.CONFIRMED)
            table = self.table_engine.lock_table(reservation.table_id)
            self.table_engine.mark_occupied(
                table,
                reservation.customer_name,
                reservation.party_size,
                reservation.customer_phone,
                reservation_id=reservation.id,
            )
            reservation.status = ReservationStatus.SEATED
            reservation.seated_at = self.clock()
        logger.info(f"Reservation {reservation.reservation_number} seated at table {table.table_number}")
        self.notifier.publish("reservation:updated", reservation, actor, FLOOR_AUDIENCES)
        self.table_engine.announce(table, actor)
        return reservation

    def complete(self, reservation_id: int, actor: TokenData) -> Reservation:
        freed = False
        with self.uow:
            reservation = self._lock(reservation_id)
            self._require_status(
                reservation, ReservationStatus.COMPLETED,
                ReservationStatus.SEATED, ReservationStatus.CONFIRMED,
            )
            table = self.table_engine.lock_table(reservation.table_id)
            if table.status == TableStatus.OCCUPIED and table.occupant_reservation_id == reservation.id:
                self.table_engine.mark_available(table, actor)
                freed = True
            else:
                freed = self.table_engine.release_reservation(table, reservation.id)
            reservation.status = ReservationStatus.COMPLETED
            reservation.completed_at = self.clock()
        logger.info(f"Reservation {reservation.reservation_number} completed")
        self.notifier.publish("reservation:updated", reservation, actor, FLOOR_AUDIENCES)
        if freed:
            self.table_engine.announce(table, actor)
        return reservation

    def cancel(self, reservation_id: int, actor: TokenData) -> Reservation:
        return self._close(reservation_id, ReservationStatus.CANCELLED, actor)

    def mark_no_show(self, reservation_id: int, actor: TokenData) -> Reservation:
        return self._close(reservation_id, ReservationStatus.NO_SHOW, actor)

    def change_status(self, reservation_id: int, status: ReservationStatus, actor: TokenData) -> Reservation:
        handlers = {
            ReservationStatus.SEATED: self.seat,
            ReservationStatus.COMPLETED: self.complete,
            ReservationStatus.CANCELLED: self.cancel,
            ReservationStatus.NO_SHOW: self.mark_no_show,
        }
        handler = handlers.get(status)
        if handler is None:
            current = self.get_reservation(reservation_id)
            raise InvalidStateError(
                "Reservations are confirmed when they are created",
                current_status=current.status.value,
                target_status=status.value,
            )
        return handler(reservation_id, actor)

    def delete(self, reservation_id: int, actor: TokenData) -> None:
        freed = False
        with self.uow:
            reservation = self._lock(reservation_id)
            table = self.table_engine.lock_table(reservation.table_id)
            freed = self.table_engine.release_reservation(table, reservation.id)
            number = reservation.reservation_number
            self.reservations.delete(reservation)
        logger.info(f"Reservation {number} deleted by {actor.name}")
        self.notifier.publish(
            "reservation:updated",
            {"id": reservation_id, "reservation_number": number, "deleted": True},
            actor,
            FLOOR_AUDIENCES,
        )
        if freed:
            self.table_engine.announce(table, actor)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, reservation_id: int) -> Reservation:
        reservation = self.reservations.get_for_update(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    def _close(self, reservation_id: int, status: ReservationStatus, actor: TokenData) -> Reservation:
        with self.uow:
            reservation = self._lock(reservation_id)
            self._require_status(reservation, status, ReservationStatus.CONFIRMED)
            table = self.table_engine.lock_table(reservation.table_id)
            freed = self.table_engine.release_reservation(table, reservation.id)
            reservation.status = status
            reservation.cancelled_at = self.clock() if status == ReservationStatus.CANCELLED else None
        logger.info(f"Reservation {reservation.reservation_number} marked {status.value} by {actor.name}")
        self.notifier.publish("reservation:updated", reservation, actor, FLOOR_AUDIENCES)
        if freed:
            self.table_engine.announce(table, actor)
        return reservation

    @staticmethod
    def _require_status(reservation: Reservation, target: ReservationStatus, *allowed: ReservationStatus) -> None:
        if reservation.status not in allowed:
            raise InvalidStateError(
                f"Reservation {reservation.reservation_number} cannot move from "
                f"{reservation.status.value} to {target.value}",
                current_status=reservation.status.value,
                target_status=target.value,
            )

    @staticmethod
    def _check_capacity(party_size: int, table: RestaurantTable) -> None:
        if party_size > table.capacity:
            raise CapacityError(party_size, table.capacity, table.table_number)

    def _ensure_no_conflict(
        self,
        table: RestaurantTable,
        on_date: date,
        start: str,
        duration: int,
        exclude_id: Optional[int] = None,
    ) -> None:
        conflicts = self.find_conflicts(table.id, on_date, start, duration, exclude_id=exclude_id)
        if not conflicts:
            return
        begin, end = booking_window(on_date, start, duration)
        raise ConflictError(
            f"Table {table.table_number} is already booked on {on_date.isoformat()} "
            f"between {begin:%H:%M} and {end:%H:%M}",
            [{
                "table_id": table.id,
                "table_number": table.table_number,
                "date": on_date.isoformat(),
                "time": start,
                "end_time": f"{end:%H:%M}",
                "conflicts": [
                    {
                        "reservation_number": other.reservation_number,
                        "time": other.time,
                        "end_time": other.end_time,
                    }
                    for other in conflicts
                ],
            }],
        )

    def _move_hold(
        self, reservation: Reservation, old_table: RestaurantTable, new_table: RestaurantTable,
    ) -> List[RestaurantTable]:
        """Keep the same-day hold in step after a confirmed booking moves."""
        changed = []
        if self.table_engine.release_reservation(old_table, reservation.id):
            changed.append(old_table)
        if reservation.date == self.today() and new_table.status == TableStatus.AVAILABLE:
            if self.table_engine.mark_reserved(new_table, reservation.id) and new_table not in changed:
                changed.append(new_table)
        return changed
