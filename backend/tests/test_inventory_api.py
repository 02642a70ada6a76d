"""Tests for inventory endpoints."""

from datetime import date, timedelta


def _item(**overrides):
    body = {
        "name": "Tomatoes",
        "category": "vegetables",
        "current_stock": 8,
        "min_stock": 10,
        "max_stock": 100,
        "unit": "kg",
        "cost_per_unit": 2.5,
        "supplier": {"name": "Green Farm", "email": "orders@farm.example.com"},
    }
    body.update(overrides)
    return body


def _create(client, headers, **overrides):
    response = client.post("/api/v1/inventory", json=_item(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["item"]


def test_create_item(client, manager_headers):
    item = _create(client, manager_headers)

    assert item["stock_status"] == "low"
    assert item["total_value"] == 20.0
    assert item["supplier"]["name"] == "Green Farm"


def test_create_requires_manager(client, cashier_headers):
    response = client.post("/api/v1/inventory", json=_item(), headers=cashier_headers)
    assert response.status_code == 403


def test_min_above_max(client, manager_headers):
    response = client.post("/api/v1/inventory", json=_item(min_stock=200), headers=manager_headers)
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_restock_via_stock_endpoint(client, manager_headers, cashier_headers):
    item = _create(client, manager_headers)

    response = client.put(
        f"/api/v1/inventory/{item['id']}/stock",
        json={"action": "restock", "quantity": 20, "reason": "Delivery"},
        headers=cashier_headers,
    )
    assert response.status_code == 200
    updated = response.json()["data"]["item"]
    assert updated["current_stock"] == 28.0
    assert updated["stock_status"] == "normal"


def test_negative_quantity_rejected(client, manager_headers):
    item = _create(client, manager_headers)

    response = client.put(
        f"/api/v1/inventory/{item['id']}/stock",
        json={"action": "usage", "quantity": -1},
        headers=manager_headers,
    )
    assert response.status_code == 422


def test_stock_history(client, manager_headers):
    item = _create(client, manager_headers)
    client.put(
        f"/api/v1/inventory/{item['id']}/stock",
        json={"action": "usage", "quantity": 3, "reason": "Lunch"},
        headers=manager_headers,
    )

    response = client.get(f"/api/v1/inventory/{item['id']}/history", headers=manager_headers)
    assert response.status_code == 200
    history = response.json()["data"]["history"]
    assert [h["action"] for h in history] == ["usage", "restock"]
    assert history[0]["reason"] == "Lunch"


def test_low_stock_alerts(client, manager_headers):
    _create(client, manager_headers, name="Basil", current_stock=1)
    _create(client, manager_headers, name="Onions", current_stock=50)

    response = client.get("/api/v1/inventory/alerts/low-stock", headers=manager_headers)
    assert response.status_code == 200
    assert [i["name"] for i in response.json()["data"]["items"]] == ["Basil"]


def test_expiring_alerts(client, manager_headers):
    soon = (date.today() + timedelta(days=2)).isoformat()
    later = (date.today() + timedelta(days=30)).isoformat()
    _create(client, manager_headers, name="Milk", expiry_date=soon)
    _create(client, manager_headers, name="Flour", expiry_date=later)

    response = client.get("/api/v1/inventory/alerts/expiring?days=7", headers=manager_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [i["name"] for i in data["items"]] == ["Milk"]
    assert data["days"] == 7


def test_list_with_filters(client, manager_headers, cashier_headers):
    _create(client, manager_headers, name="Basil", current_stock=1)
    _create(client, manager_headers, name="Rice", category="grains", current_stock=50)

    response = client.get("/api/v1/inventory?category=grains", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [i["name"] for i in data["items"]] == ["Rice"]
    assert data["pagination"]["total"] == 1

    response = client.get("/api/v1/inventory?stock_status=low", headers=cashier_headers)
    assert [i["name"] for i in response.json()["data"]["items"]] == ["Basil"]


def test_update_and_delete(client, manager_headers):
    item = _create(client, manager_headers)
    url = f"/api/v1/inventory/{item['id']}"

    response = client.put(url, json={"min_stock": 5, "storage_location": "Walk-in"}, headers=manager_headers)
    assert response.status_code == 200
    updated = response.json()["data"]["item"]
    assert updated["stock_status"] == "normal"
    assert updated["storage_location"] == "Walk-in"

    assert client.delete(url, headers=manager_headers).status_code == 200
    assert client.get(url, headers=manager_headers).status_code == 404
