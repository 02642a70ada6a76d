"""Reservation routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from restaurant_pos.api.deps import ReservationEngine
from restaurant_pos.core.rbac import RequireFrontOfHouse, RequireManager
from restaurant_pos.core.responses import paginated_response, success_response
from restaurant_pos.models.reservation import MAX_DURATION, MAX_PARTY_SIZE, MIN_DURATION, ReservationStatus
from restaurant_pos.schemas.reservations import (
    HHMM_PATTERN,
    ReservationCreate,
    ReservationResponse,
    ReservationStatusUpdate,
    ReservationUpdate,
)
from restaurant_pos.schemas.tables import TableResponse

router = APIRouter()


def _reservation(reservation) -> dict:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")


@router.get("")
def list_reservations(
    engine: ReservationEngine,
    current_user: RequireFrontOfHouse,
    status: Optional[ReservationStatus] = None,
    date: Optional[date] = None,
    table_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    items, total = engine.list_reservations(status, date, table_id, page, limit)
    return paginated_response("reservations", [_reservation(r) for r in items], total, page, limit)


@router.get("/available-tables")
def available_tables(
    engine: ReservationEngine,
    current_user: RequireFrontOfHouse,
    date: date,
    time: str = Query(..., pattern=HHMM_PATTERN),
    duration: Optional[int] = Query(None, ge=MIN_DURATION, le=MAX_DURATION),
    party_size: Optional[int] = Query(None, alias="partySize", ge=1, le=MAX_PARTY_SIZE),
):
    """Tables free for the whole window, for suggesting alternatives."""
    tables = engine.find_available_tables(date, time, duration, party_size)
    return success_response({
        "tables": [TableResponse.model_validate(t).model_dump(mode="json") for t in tables],
        "count": len(tables),
    })


@router.get("/{reservation_id}")
def get_reservation(reservation_id: int, engine: ReservationEngine, current_user: RequireFrontOfHouse):
    return success_response({"reservation": _reservation(engine.get_reservation(reservation_id))})


@router.post("", status_code=201)
def create_reservation(body: ReservationCreate, engine: ReservationEngine, current_user: RequireFrontOfHouse):
    reservation = engine.create(body.model_dump(), current_user)
    return success_response({"reservation": _reservation(reservation)}, "Reservation created successfully")


@router.put("/{reservation_id}")
def update_reservation(
    reservation_id: int, body: ReservationUpdate, engine: ReservationEngine, current_user: RequireFrontOfHouse,
):
    reservation = engine.update(reservation_id, body.model_dump(exclude_unset=True), current_user)
    return success_response({"reservation": _reservation(reservation)}, "Reservation updated successfully")


@router.put("/{reservation_id}/status")
def update_reservation_status(
    reservation_id: int,
    body: ReservationStatusUpdate,
    engine: ReservationEngine,
    current_user: RequireFrontOfHouse,
):
    """Seat, complete, cancel or mark a reservation as a no-show."""
    reservation = engine.change_status(reservation_id, body.status, current_user)
    return success_response(
        {"reservation": _reservation(reservation)},
        f"Reservation {reservation.status.value}",
    )


@router.delete("/{reservation_id}")
def delete_reservation(reservation_id: int, engine: ReservationEngine, current_user: RequireManager):
    engine.delete(reservation_id, current_user)
    return success_response(None, "Reservation deleted successfully")
