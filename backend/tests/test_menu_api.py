"""Tests for menu endpoints."""


def _order_body(item, table_number="T2"):
    return {
        "order_type": "dine-in",
        "table_number": table_number,
        "items": [{"menu_item_id": item.id, "quantity": 1}],
    }


def test_kitchen_switches_item_off_and_orders_are_refused(
    client, tables, menu, kitchen_headers, cashier_headers,
):
    url = f"/api/v1/menu/{menu['burger'].id}/availability"

    response = client.put(url, headers=kitchen_headers)
    assert response.status_code == 200
    assert response.json()["data"]["item"]["available"] is False
    assert response.json()["message"] == "Menu item disabled"

    response = client.post("/api/v1/orders", json=_order_body(menu["burger"]), headers=cashier_headers)
    assert response.status_code == 422
    assert response.json()["error"] == "not_available"

    response = client.put(url, headers=kitchen_headers)
    assert response.json()["data"]["item"]["available"] is True

    response = client.post("/api/v1/orders", json=_order_body(menu["burger"]), headers=cashier_headers)
    assert response.status_code == 201


def test_availability_toggle_roles(client, menu, cashier_headers, manager_headers):
    url = f"/api/v1/menu/{menu['special'].id}/availability"

    assert client.put(url, headers=cashier_headers).status_code == 403

    response = client.put(url, headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["data"]["item"]["available"] is True


def test_availability_unknown_item(client, kitchen_headers):
    response = client.put("/api/v1/menu/999/availability", headers=kitchen_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_get_menu_item(client, menu, cashier_headers):
    response = client.get(f"/api/v1/menu/{menu['fries'].id}", headers=cashier_headers)
    assert response.status_code == 200
    item = response.json()["data"]["item"]
    assert item["name"] == "Fries"
    assert item["price"] == 3.0

    assert client.get("/api/v1/menu/999", headers=cashier_headers).status_code == 404


def test_categories(client, menu, kitchen_headers):
    response = client.get("/api/v1/menu/categories", headers=kitchen_headers)
    assert response.status_code == 200
    assert response.json()["data"]["categories"] == ["Mains", "Sides"]


def test_create_and_update_menu_item(client, manager_headers, kitchen_headers):
    body = {"name": "Soup", "price": 5.5, "category": "Starters"}
    assert client.post("/api/v1/menu", json=body, headers=kitchen_headers).status_code == 403

    response = client.post("/api/v1/menu", json=body, headers=manager_headers)
    assert response.status_code == 201
    item = response.json()["data"]["item"]
    assert item["available"] is True

    response = client.put(f"/api/v1/menu/{item['id']}", json={"price": 6}, headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["data"]["item"]["price"] == 6.0


def test_delete_menu_item(client, menu, manager_headers, cashier_headers):
    url = f"/api/v1/menu/{menu['fries'].id}"

    assert client.delete(url, headers=cashier_headers).status_code == 403
    assert client.delete(url, headers=manager_headers).status_code == 200
    assert client.get(url, headers=manager_headers).status_code == 404


def test_delete_ordered_item_is_refused(client, tables, menu, manager_headers, cashier_headers):
    response = client.post("/api/v1/orders", json=_order_body(menu["burger"]), headers=cashier_headers)
    assert response.status_code == 201

    response = client.delete(f"/api/v1/menu/{menu['burger'].id}", headers=manager_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"
    assert client.get(f"/api/v1/menu/{menu['burger'].id}", headers=manager_headers).status_code == 200
