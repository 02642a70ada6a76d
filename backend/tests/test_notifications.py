"""Tests for the real-time event broadcaster."""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from restaurant_pos.core.rbac import TokenData, UserRole
from restaurant_pos.services.notification_service import (
    CASHIER,
    KITCHEN,
    MANAGER,
    ORDER_AUDIENCES,
    EventBroadcaster,
)


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.closed_with = None
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def close(self, code=1000):
        self.closed_with = code

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(message)


ACTOR = TokenData(user_id=1, email="cal@example.com", role=UserRole.CASHIER, name="Cal")


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_connect_joins_rooms():
    broadcaster = EventBroadcaster()
    ws = FakeWebSocket()

    assert asyncio.run(broadcaster.connect(ws, (KITCHEN, MANAGER), user_id=7)) is True

    assert ws.accepted
    assert broadcaster.get_connection_count() == 1
    assert broadcaster.get_connection_count(KITCHEN) == 1
    assert broadcaster.get_connection_count(CASHIER) == 0

    broadcaster.disconnect(ws)
    assert broadcaster.get_connection_count() == 0
    assert broadcaster.get_connection_count(MANAGER) == 0


def test_broadcast_reaches_each_socket_once():
    broadcaster = EventBroadcaster()
    manager_ws = FakeWebSocket()
    kitchen_ws = FakeWebSocket()
    cashier_ws = FakeWebSocket()

    async def scenario():
        await broadcaster.connect(manager_ws, (KITCHEN, CASHIER, MANAGER))
        await broadcaster.connect(kitchen_ws, (KITCHEN,))
        await broadcaster.connect(cashier_ws, (CASHIER,))
        return await broadcaster.broadcast({"event": "order:created"}, ORDER_AUDIENCES)

    assert asyncio.run(scenario()) == 3
    assert len(manager_ws.sent) == 1
    assert len(kitchen_ws.sent) == 1
    assert len(cashier_ws.sent) == 1


def test_broadcast_respects_audiences():
    broadcaster = EventBroadcaster()
    kitchen_ws = FakeWebSocket()
    manager_ws = FakeWebSocket()

    async def scenario():
        await broadcaster.connect(kitchen_ws, (KITCHEN,))
        await broadcaster.connect(manager_ws, (MANAGER,))
        await broadcaster.broadcast({"event": "inventory:low_stock_alert"}, (MANAGER,))

    asyncio.run(scenario())
    assert kitchen_ws.sent == []
    assert manager_ws.sent[0]["event"] == "inventory:low_stock_alert"


def test_failed_socket_is_dropped():
    broadcaster = EventBroadcaster()
    broken = FakeWebSocket(fail=True)
    healthy = FakeWebSocket()

    async def scenario():
        await broadcaster.connect(broken, (KITCHEN,))
        await broadcaster.connect(healthy, (KITCHEN,))
        return await broadcaster.broadcast({"event": "order:created"}, (KITCHEN,))

    assert asyncio.run(scenario()) == 1
    assert broadcaster.get_connection_count(KITCHEN) == 1
    assert len(healthy.sent) == 1


def test_publish_without_loop_is_dropped():
    broadcaster = EventBroadcaster()
    broadcaster.publish("table:freed", {"id": 1}, ACTOR, (CASHIER,))


def test_publish_never_raises_on_serializer_failure():
    def explode(entity):
        raise ValueError("cannot serialize")

    broadcaster = EventBroadcaster(serializer=explode)
    ws = FakeWebSocket()

    async def scenario():
        broadcaster.bind(asyncio.get_running_loop())
        await broadcaster.connect(ws, (CASHIER,))
        broadcaster.publish("table:freed", {"id": 1}, ACTOR, (CASHIER,))
        await _settle()

    asyncio.run(scenario())
    assert ws.sent == []


def test_publish_delivers_on_bound_loop():
    broadcaster = EventBroadcaster()
    ws = FakeWebSocket()

    async def scenario():
        broadcaster.bind(asyncio.get_running_loop())
        await broadcaster.connect(ws, (CASHIER,))
        broadcaster.publish("table:occupied", {"id": 3}, ACTOR, (CASHIER, MANAGER))
        await _settle()
        broadcaster.unbind()

    asyncio.run(scenario())
    message = ws.sent[0]
    assert message["event"] == "table:occupied"
    assert message["data"]["entity"] == {"id": 3}
    assert message["data"]["actor"] == "Cal"
    assert message["data"]["timestamp"]


class TestWebSocketEndpoint:
    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()

    def test_rejects_invalid_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?token=garbage") as ws:
                ws.receive_json()

    def test_joins_role_rooms_and_answers_ping(self, client, kitchen_user):
        from restaurant_pos.core.security import create_access_token

        token = create_access_token(data={
            "sub": str(kitchen_user.id), "email": kitchen_user.email, "role": "kitchen", "name": kitchen_user.name,
        })
        with client.websocket_connect(f"/ws?token={token}") as ws:
            hello = ws.receive_json()
            assert hello["event"] == "connected"
            assert hello["data"]["rooms"] == ["kitchen"]

            ws.send_text("ping")
            assert ws.receive_text() == "pong"

    def test_kitchen_receives_new_orders(self, client, tables, menu, kitchen_user, cashier_headers):
        from restaurant_pos.core.security import create_access_token

        token = create_access_token(data={
            "sub": str(kitchen_user.id), "email": kitchen_user.email, "role": "kitchen", "name": kitchen_user.name,
        })
        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.receive_json()

            response = client.post(
                "/api/v1/orders",
                json={
                    "order_type": "takeout",
                    "customer_name": "Alice",
                    "items": [{"menu_item_id": menu["burger"].id, "quantity": 1}],
                },
                headers=cashier_headers,
            )
            assert response.status_code == 201

            event = ws.receive_json()
            assert event["event"] == "order:created"
            assert event["data"]["entity"]["order_number"] == response.json()["data"]["order"]["order_number"]
            assert event["data"]["actor"] == "Cal Cashier"
