"""Tests for order endpoints."""


def _order(menu, **overrides):
    body = {
        "order_type": "dine-in",
        "table_number": "T2",
        "customer_name": "Alice",
        "items": [
            {"menu_item_id": menu["burger"].id, "quantity": 2},
            {"menu_item_id": menu["fries"].id, "quantity": 1},
        ],
    }
    body.update(overrides)
    return body


def _create(client, menu, headers, **overrides):
    response = client.post("/api/v1/orders", json=_order(menu, **overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["order"]


def test_create_order(client, tables, menu, cashier_headers):
    order = _create(client, menu, cashier_headers)

    assert order["status"] == "pending"
    assert order["subtotal"] == 20.0
    assert order["tax"] == 1.6
    assert order["total"] == 21.6
    assert len(order["items"]) == 2
    assert order["status_history"][0]["status"] == "pending"


def test_create_order_validation(client, tables, menu, cashier_headers):
    response = client.post("/api/v1/orders", json=_order(menu, items=[]), headers=cashier_headers)
    assert response.status_code == 422

    response = client.post("/api/v1/orders", json=_order(menu, table_number=None), headers=cashier_headers)
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "table_number"


def test_unavailable_item(client, tables, menu, cashier_headers):
    response = client.post(
        "/api/v1/orders",
        json=_order(menu, items=[{"menu_item_id": menu["special"].id, "quantity": 1}]),
        headers=cashier_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "not_available"


def test_kitchen_cannot_create_orders(client, tables, menu, kitchen_headers):
    response = client.post("/api/v1/orders", json=_order(menu), headers=kitchen_headers)
    assert response.status_code == 403


def test_kitchen_display(client, tables, menu, cashier_headers, kitchen_headers):
    _create(client, menu, cashier_headers)

    response = client.get("/api/v1/orders/kitchen/display", headers=kitchen_headers)
    assert response.status_code == 200
    assert response.json()["data"]["count"] == 1

    response = client.get("/api/v1/orders/kitchen/display", headers=cashier_headers)
    assert response.status_code == 403


def test_status_updates_by_role(client, tables, menu, cashier_headers, kitchen_headers):
    order = _create(client, menu, cashier_headers)
    url = f"/api/v1/orders/{order['id']}/status"

    response = client.put(url, json={"status": "confirmed"}, headers=cashier_headers)
    assert response.status_code == 200

    response = client.put(url, json={"status": "preparing"}, headers=cashier_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    response = client.put(url, json={"status": "preparing"}, headers=kitchen_headers)
    assert response.status_code == 200
    assert response.json()["data"]["order"]["kitchen_started_at"] is not None

    response = client.put(url, json={"status": "completed"}, headers=kitchen_headers)
    assert response.status_code == 403

    response = client.put(url, json={"status": "ready"}, headers=kitchen_headers)
    assert response.status_code == 200

    response = client.put(url, json={"status": "completed"}, headers=cashier_headers)
    assert response.status_code == 200
    assert response.json()["data"]["order"]["status"] == "completed"


def test_invalid_transition(client, tables, menu, cashier_headers, manager_headers):
    order = _create(client, menu, cashier_headers)

    response = client.put(
        f"/api/v1/orders/{order['id']}/status", json={"status": "ready"}, headers=manager_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "invalid_state"
    assert body["errors"][0]["current_status"] == "pending"


def test_cashier_visibility(client, tables, menu, cashier_headers, other_cashier_headers, manager_headers):
    order = _create(client, menu, cashier_headers)

    response = client.get(f"/api/v1/orders/{order['id']}", headers=other_cashier_headers)
    assert response.status_code == 403

    response = client.get("/api/v1/orders", headers=other_cashier_headers)
    assert response.json()["data"]["pagination"]["total"] == 0

    response = client.get("/api/v1/orders", headers=manager_headers)
    assert response.json()["data"]["pagination"]["total"] == 1


def test_edit_order(client, tables, menu, cashier_headers):
    order = _create(client, menu, cashier_headers)

    response = client.put(
        f"/api/v1/orders/{order['id']}", json={"notes": "No onions"}, headers=cashier_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["order"]["notes"] == "No onions"
    assert response.json()["data"]["order"]["total"] == 21.6


def test_delete_order(client, tables, menu, cashier_headers, manager_headers):
    order = _create(client, menu, cashier_headers)
    url = f"/api/v1/orders/{order['id']}"

    assert client.delete(url, headers=cashier_headers).status_code == 403
    assert client.delete(url, headers=manager_headers).status_code == 200
    assert client.get(url, headers=manager_headers).status_code == 404


def test_menu_listing(client, menu, cashier_headers):
    response = client.get("/api/v1/menu?available=true", headers=cashier_headers)
    assert response.status_code == 200
    names = {item["name"] for item in response.json()["data"]["items"]}
    assert names == {"Burger", "Fries"}
