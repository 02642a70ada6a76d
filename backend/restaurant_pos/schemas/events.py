"""Serialization of entities carried by real-time events."""

from typing import Any

from restaurant_pos.models import InventoryItem, Order, Reservation, RestaurantTable
from restaurant_pos.schemas.inventory import InventoryItemResponse
from restaurant_pos.schemas.orders import OrderResponse
from restaurant_pos.schemas.reservations import ReservationResponse
from restaurant_pos.schemas.tables import TableResponse

_RESPONSE_SCHEMAS = {
    RestaurantTable: TableResponse,
    Reservation: ReservationResponse,
    Order: OrderResponse,
}


def serialize_entity(entity: Any) -> Any:
    """JSON-ready dict for an entity, using its API response schema."""
    if isinstance(entity, InventoryItem):
        return InventoryItemResponse.from_item(entity).model_dump(mode="json")
    schema = _RESPONSE_SCHEMAS.get(type(entity))
    if schema is not None:
        return schema.model_validate(entity).model_dump(mode="json")
    return entity
