"""Real-time event broadcaster.

Engines publish events synchronously from request threads. Delivery happens
on the application's event loop, so a slow or broken socket never holds up
or fails the mutation that produced the event.

Message format::

    {"event": "order:created", "data": {"entity": {...}, "actor": "Ana", "timestamp": "..."}}
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from fastapi import WebSocket, status

from restaurant_pos.core.rbac import TokenData
from restaurant_pos.core.timeutils import utcnow

logger = logging.getLogger(__name__)

KITCHEN = "kitchen"
CASHIER = "cashier"
MANAGER = "manager"

ORDER_AUDIENCES = (KITCHEN, CASHIER, MANAGER)
FLOOR_AUDIENCES = (CASHIER, MANAGER)
MANAGER_AUDIENCES = (MANAGER,)


class EventBroadcaster:
    """Role-scoped WebSocket rooms plus the engines' notification sink."""

    MAX_CONNECTIONS_PER_ROOM = 1000

    def __init__(self, serializer: Optional[Callable[[Any], Any]] = None):
        self.rooms: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}
        self._serializer = serializer
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Future] = set()

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop deliveries are scheduled on."""
        self._loop = loop

    def unbind(self) -> None:
        self._loop = None

    async def connect(self, websocket: WebSocket, rooms: Iterable[str], user_id: Optional[int] = None) -> bool:
        """Accept a socket and join it to rooms. Returns False if rejected."""
        rooms = tuple(rooms)
        for room in rooms:
            if len(self.rooms.get(room, [])) >= self.MAX_CONNECTIONS_PER_ROOM:
                logger.warning(f"WebSocket connection rejected: room '{room}' at capacity")
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return False

        await websocket.accept()
        for room in rooms:
            self.rooms.setdefault(room, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "user_id": user_id,
            "rooms": rooms,
        }
        logger.debug(f"WebSocket connected to rooms {rooms}, user_id={user_id}")
        return True

    def disconnect(self, websocket: WebSocket) -> None:
        meta = self.connection_metadata.pop(id(websocket), None)
        rooms = meta["rooms"] if meta else tuple(self.rooms)
        for room in rooms:
            members = self.rooms.get(room, [])
            if websocket in members:
                members.remove(websocket)
        logger.debug(f"WebSocket disconnected from rooms {rooms}")

    def get_connection_count(self, room: Optional[str] = None) -> int:
        if room:
            return len(self.rooms.get(room, []))
        return len(self.connection_metadata)

    async def broadcast(self, message: Dict[str, Any], audiences: Sequence[str]) -> int:
        """Send a message once to every socket in the given rooms.

        Sockets that fail are dropped. Returns the number of deliveries.
        """
        delivered = 0
        seen: Set[int] = set()
        for room in audiences:
            for connection in list(self.rooms.get(room, [])):
                if id(connection) in seen:
                    continue
                seen.add(id(connection))
                try:
                    await connection.send_json(message)
                    delivered += 1
                except Exception as e:
                    logger.debug(f"WebSocket send failed: {e}")
                    self.disconnect(connection)
        return delivered

    def publish(
        self, event: str, entity: Any, actor: Optional[TokenData], audiences: Sequence[str],
    ) -> None:
        """Queue an event for delivery. Never raises."""
        try:
            message = {
                "event": event,
                "data": {
                    "entity": self._serializer(entity) if self._serializer else entity,
                    "actor": actor.name if actor else None,
                    "timestamp": utcnow().isoformat(),
                },
            }
            loop = self._loop
            if loop is None or loop.is_closed():
                logger.debug(f"No event loop bound, dropping event {event}")
                return
            loop.call_soon_threadsafe(self._schedule, message, tuple(audiences))
        except Exception as e:
            logger.warning(f"Failed to publish event {event}: {e}", exc_info=True)

    def _schedule(self, message: Dict[str, Any], audiences: Sequence[str]) -> None:
        task = asyncio.ensure_future(self._deliver(message, audiences))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, message: Dict[str, Any], audiences: Sequence[str]) -> None:
        try:
            await self.broadcast(message, audiences)
        except Exception as e:
            logger.warning(f"Event delivery failed for {message.get('event')}: {e}")


def _default_serializer(entity: Any) -> Any:
    from restaurant_pos.schemas.events import serialize_entity

    return serialize_entity(entity)


broadcaster = EventBroadcaster(serializer=_default_serializer)
