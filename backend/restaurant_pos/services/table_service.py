"""Table status engine.

Table states and the moves between them::

    available <-> occupied
    available <-> reserved
    available <-> maintenance

Anything else (e.g. occupied -> reserved) is refused; free the table first.
``reserved -> occupied`` is allowed for seating a reservation, and a table
already in maintenance can take further maintenance reports.

The ``mark_*`` methods mutate a table already loaded with a row lock and
leave committing to the caller, so the reservation and order engines can
move a table inside their own transaction. The remaining public methods are
complete transactions that publish their event after commit.
"""

import logging
from typing import Any, Dict, List, Optional

from restaurant_pos.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from restaurant_pos.core.rbac import TokenData
from restaurant_pos.core.timeutils import Clock, utcnow
from restaurant_pos.models.table import (
    MaintenanceStatus,
    RestaurantTable,
    TableLocation,
    TableMaintenanceEntry,
    TableShape,
    TableStatus,
)
from restaurant_pos.repositories.ports import (
    Notifier,
    ReservationRepository,
    TableRepository,
    UnitOfWork,
)
from restaurant_pos.services.notification_service import FLOOR_AUDIENCES

logger = logging.getLogger(__name__)

TABLE_EVENTS = {
    TableStatus.OCCUPIED: "table:occupied",
    TableStatus.AVAILABLE: "table:freed",
}

DESCRIPTIVE_FIELDS = ("table_number", "capacity", "shape", "location", "features", "notes")


class TableService:
    """Owns table status and occupancy metadata."""

    def __init__(
        self,
        tables: TableRepository,
        reservations: ReservationRepository,
        uow: UnitOfWork,
        notifier: Notifier,
        clock: Clock = utcnow,
    ):
        self.tables = tables
        self.reservations = reservations
        self.uow = uow
        self.notifier = notifier
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tables(self, status: Optional[TableStatus] = None) -> List[RestaurantTable]:
        return self.tables.list(status=status)

    def get_table(self, table_id: int) -> RestaurantTable:
        table = self.tables.get(table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    def lock_table(self, table_id: int) -> RestaurantTable:
        """Re-read a table under a write lock before mutating it."""
        table = self.tables.get_for_update(table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    # ------------------------------------------------------------------
    # In-transaction transitions
    # ------------------------------------------------------------------

    def mark_occupied(
        self,
        table: RestaurantTable,
        customer_name: Optional[str],
        party_size: Optional[int],
        contact: Optional[str] = None,
        reservation_id: Optional[int] = None,
    ) -> RestaurantTable:
        errors = []
        if not customer_name or not customer_name.strip():
            errors.append({"field": "customer_name", "message": "Customer name is required to occupy a table"})
        if not party_size:
            errors.append({"field": "party_size", "message": "Party size is required to occupy a table"})
        if errors:
            raise ValidationError("Customer name and party size are required", errors=errors)

        if table.status not in (TableStatus.AVAILABLE, TableStatus.RESERVED):
            raise InvalidStateError(
                f"Table {table.table_number} is {table.status.value} and cannot be occupied",
                current_status=table.status.value,
                target_status=TableStatus.OCCUPIED.value,
            )
        if (
            table.status == TableStatus.RESERVED
            and table.current_reservation_id is not None
            and table.current_reservation_id != reservation_id
        ):
            logger.info(
                f"Table {table.table_number} seated as walk-in over reservation "
                f"{table.current_reservation_id}"
            )

        table.status = TableStatus.OCCUPIED
        table.occupied_at = self.clock()
        table.occupied_by = {
            "customer_name": customer_name.strip(),
            "party_size": party_size,
            "contact": contact,
            "reservation_id": reservation_id,
        }
        table.current_reservation_id = None
        return table

    def mark_available(self, table: RestaurantTable, actor: Optional[TokenData] = None) -> RestaurantTable:
        """Free a table. Freeing an already available table is a no-op apart
        from the cleaning stamp."""
        now = self.clock()
        if table.status == TableStatus.MAINTENANCE:
            for entry in table.open_maintenance:
                entry.status = MaintenanceStatus.RESOLVED
                entry.resolved_at = now
                entry.resolved_by = actor.user_id if actor else None

        table.status = TableStatus.AVAILABLE
        table.occupied_at = None
        table.occupied_by = None
        table.current_order_id = None
        table.current_reservation_id = None
        table.last_cleaned = now
        return table

    def mark_reserved(self, table: RestaurantTable, reservation_id: int) -> bool:
        """Hold a table for a reservation. Returns False when already held for it."""
        if table.status == TableStatus.RESERVED and table.current_reservation_id == reservation_id:
            return False
        if table.status != TableStatus.AVAILABLE:
            raise InvalidStateError(
                f"Table {table.table_number} is {table.status.value} and cannot be reserved",
                current_status=table.status.value,
                target_status=TableStatus.RESERVED.value,
            )
        table.status = TableStatus.RESERVED
        table.current_reservation_id = reservation_id
        return True

    def release_reservation(self, table: RestaurantTable, reservation_id: int) -> bool:
        """Free the table only if it is held for this reservation."""
        if table.status == TableStatus.RESERVED and table.current_reservation_id == reservation_id:
            self.mark_available(table)
            return True
        return False

    def mark_maintenance(self, table: RestaurantTable, issue: str, actor: TokenData) -> RestaurantTable:
        if table.status not in (TableStatus.AVAILABLE, TableStatus.MAINTENANCE):
            raise InvalidStateError(
                f"Table {table.table_number} is {table.status.value}; free it before reporting maintenance",
                current_status=table.status.value,
                target_status=TableStatus.MAINTENANCE.value,
            )
        table.status = TableStatus.MAINTENANCE
        table.maintenance_history.append(TableMaintenanceEntry(
            issue=issue,
            reported_by=actor.user_id,
            reported_at=self.clock(),
            status=MaintenanceStatus.REPORTED,
        ))
        return table

    def attach_order(self, table_number: str, order_id: int) -> bool:
        """Link an order to an occupied table. Returns True when linked."""
        table = self.tables.get_by_number(table_number, for_update=True)
        if table is None or table.status != TableStatus.OCCUPIED:
            return False
        table.current_order_id = order_id
        return True

    def detach_order(self, table_number: Optional[str], order_id: int) -> bool:
        if not table_number:
            return False
        table = self.tables.get_by_number(table_number, for_update=True)
        if table is None or table.current_order_id != order_id:
            return False
        table.current_order_id = None
        return True

    def announce(self, table: RestaurantTable, actor: Optional[TokenData], event: Optional[str] = None) -> None:
        """Publish ``event``, or the one matching the table's current status."""
        event = event or TABLE_EVENTS.get(table.status, "table:updated")
        self.notifier.publish(event, table, actor, FLOOR_AUDIENCES)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def occupy(
        self,
        table_id: int,
        customer_name: Optional[str],
        party_size: Optional[int],
        contact: Optional[str],
        actor: TokenData,
    ) -> RestaurantTable:
        with self.uow:
            table = self.lock_table(table_id)
            self.mark_occupied(table, customer_name, party_size, contact)
        logger.info(f"Table {table.table_number} occupied by {customer_name} ({party_size}) via {actor.name}")
        self.announce(table, actor)
        return table

    def free(self, table_id: int, actor: TokenData) -> RestaurantTable:
        with self.uow:
            table = self.lock_table(table_id)
            self.mark_available(table, actor)
        logger.info(f"Table {table.table_number} freed by {actor.name}")
        self.announce(table, actor)
        return table

    def report_maintenance(self, table_id: int, issue: Optional[str], actor: TokenData) -> RestaurantTable:
        with self.uow:
            table = self.lock_table(table_id)
            self.mark_maintenance(table, issue or "Marked for maintenance", actor)
        logger.info(f"Maintenance reported on table {table.table_number} by {actor.name}: {issue}")
        self.announce(table, actor)
        return table

    def set_status(self, table_id: int, status: TableStatus, payload: Dict[str, Any], actor: TokenData) -> RestaurantTable:
        """Apply a status change requested through the API."""
        if status == TableStatus.OCCUPIED:
            return self.occupy(
                table_id, payload.get("customer_name"), payload.get("party_size"),
                payload.get("contact"), actor,
            )
        if status == TableStatus.AVAILABLE:
            return self.free(table_id, actor)
        if status == TableStatus.MAINTENANCE:
            return self.report_maintenance(table_id, payload.get("issue"), actor)
        raise ValidationError(
            "Tables are reserved through reservations", field="status",
        )

    def create_table(self, data: Dict[str, Any], actor: TokenData) -> RestaurantTable:
        with self.uow:
            self._ensure_unique_number(data["table_number"])
            table = RestaurantTable(status=TableStatus.AVAILABLE, **data)
            self.tables.add(table)
        logger.info(f"Table {table.table_number} created by {actor.name}")
        self.announce(table, actor, "table:updated")
        return table

    def update_table(self, table_id: int, patch: Dict[str, Any], actor: TokenData) -> RestaurantTable:
        with self.uow:
            table = self.lock_table(table_id)
            number = patch.get("table_number")
            if number is not None and number != table.table_number:
                self._ensure_unique_number(number)
            occupant = table.occupied_by or {}
            if patch.get("capacity") is not None and occupant.get("party_size", 0) > patch["capacity"]:
                raise ValidationError(
                    "Capacity cannot drop below the seated party size", field="capacity",
                )
            for field in DESCRIPTIVE_FIELDS:
                if field in patch and patch[field] is not None:
                    setattr(table, field, patch[field])
        self.announce(table, actor, "table:updated")
        return table

    def delete_table(self, table_id: int, actor: TokenData) -> None:
        with self.uow:
            table = self.lock_table(table_id)
            if table.status == TableStatus.OCCUPIED or table.current_order_id is not None:
                raise InvalidStateError(
                    f"Table {table.table_number} is in use and cannot be deleted",
                    current_status=table.status.value,
                )
            if self.reservations.exists_for_table(table.id):
                raise InvalidStateError(
                    f"Table {table.table_number} has reservations on record and cannot be deleted",
                    current_status=table.status.value,
                )
            number = table.table_number
            self.tables.delete(table)
        logger.info(f"Table {number} deleted by {actor.name}")
        self.notifier.publish("table:updated", {"id": table_id, "table_number": number, "deleted": True},
                              actor, FLOOR_AUDIENCES)

    def provision_default_tables(self, count: int) -> int:
        """Create tables T1..Tn when none exist. Returns the number created."""
        if self.tables.count() > 0:
            return 0
        shapes = (TableShape.SQUARE, TableShape.RECTANGULAR, TableShape.ROUND)
        capacities = (2, 4, 6)
        with self.uow:
            for n in range(1, count + 1):
                self.tables.add(RestaurantTable(
                    table_number=f"T{n}",
                    capacity=capacities[(n - 1) % len(capacities)],
                    shape=shapes[(n - 1) % len(shapes)],
                    location=TableLocation.INDOOR,
                    status=TableStatus.AVAILABLE,
                    features=[],
                ))
        logger.info(f"Provisioned {count} default tables")
        return count

    def _ensure_unique_number(self, table_number: str) -> None:
        if self.tables.get_by_number(table_number) is not None:
            raise ValidationError(f"Table number {table_number} already exists", field="table_number")
