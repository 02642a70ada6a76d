"""Tests for table endpoints."""


def test_list_tables(client, tables, cashier_headers):
    response = client.get("/api/v1/tables", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [t["table_number"] for t in data["tables"]] == ["T1", "T2", "T3"]
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}


def test_list_tables_by_status(client, tables, cashier_headers):
    client.put(
        f"/api/v1/tables/{tables['T1'].id}/status",
        json={"status": "occupied", "customer_name": "Alice", "party_size": 2},
        headers=cashier_headers,
    )
    response = client.get("/api/v1/tables?status=occupied", headers=cashier_headers)
    assert [t["table_number"] for t in response.json()["data"]["tables"]] == ["T1"]


def test_get_table_not_found(client, cashier_headers):
    response = client.get("/api/v1/tables/999", headers=cashier_headers)
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "not_found"


def test_create_table_requires_manager(client, cashier_headers, manager_headers):
    body = {"table_number": "P1", "capacity": 8, "shape": "round", "location": "private"}

    response = client.post("/api/v1/tables", json=body, headers=cashier_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    response = client.post("/api/v1/tables", json=body, headers=manager_headers)
    assert response.status_code == 201
    table = response.json()["data"]["table"]
    assert table["status"] == "available"
    assert table["shape"] == "round"
    assert table["location"] == "private"


def test_create_table_capacity_bounds(client, manager_headers):
    response = client.post(
        "/api/v1/tables", json={"table_number": "P2", "capacity": 25}, headers=manager_headers,
    )
    assert response.status_code == 422


def test_duplicate_table_number(client, tables, manager_headers):
    response = client.post(
        "/api/v1/tables", json={"table_number": "T1", "capacity": 2}, headers=manager_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "table_number"


def test_occupy_and_free(client, tables, cashier_headers):
    table_id = tables["T2"].id
    response = client.put(
        f"/api/v1/tables/{table_id}/status",
        json={"status": "occupied", "customer_name": "Alice", "party_size": 3},
        headers=cashier_headers,
    )
    assert response.status_code == 200
    table = response.json()["data"]["table"]
    assert table["status"] == "occupied"
    assert table["occupied_by"]["customer_name"] == "Alice"

    response = client.put(
        f"/api/v1/tables/{table_id}/status", json={"status": "available"}, headers=cashier_headers,
    )
    assert response.status_code == 200
    table = response.json()["data"]["table"]
    assert table["status"] == "available"
    assert table["occupied_by"] is None
    assert table["last_cleaned"] is not None


def test_occupy_without_customer(client, tables, cashier_headers):
    response = client.put(
        f"/api/v1/tables/{tables['T2'].id}/status", json={"status": "occupied"}, headers=cashier_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_cannot_reserve_directly(client, tables, cashier_headers):
    response = client.put(
        f"/api/v1/tables/{tables['T2'].id}/status", json={"status": "reserved"}, headers=cashier_headers,
    )
    assert response.status_code == 422


def test_occupied_table_conflict(client, tables, cashier_headers):
    url = f"/api/v1/tables/{tables['T1'].id}/status"
    client.put(url, json={"status": "occupied", "customer_name": "Alice", "party_size": 2}, headers=cashier_headers)

    response = client.put(url, json={"status": "maintenance", "issue": "Spill"}, headers=cashier_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state"


def test_report_maintenance(client, tables, cashier_headers):
    response = client.post(
        f"/api/v1/tables/{tables['T3'].id}/maintenance", json={"issue": "Wobbly leg"}, headers=cashier_headers,
    )
    assert response.status_code == 200
    table = response.json()["data"]["table"]
    assert table["status"] == "maintenance"
    assert table["maintenance_history"][0]["issue"] == "Wobbly leg"
    assert table["maintenance_history"][0]["status"] == "reported"


def test_update_table(client, tables, manager_headers):
    response = client.put(
        f"/api/v1/tables/{tables['T1'].id}", json={"capacity": 3, "features": ["window"]}, headers=manager_headers,
    )
    assert response.status_code == 200
    table = response.json()["data"]["table"]
    assert table["capacity"] == 3
    assert table["features"] == ["window"]


def test_delete_table_requires_admin(client, tables, manager_headers, admin_headers):
    url = f"/api/v1/tables/{tables['T1'].id}"

    response = client.delete(url, headers=manager_headers)
    assert response.status_code == 403

    response = client.delete(url, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = client.get(url, headers=admin_headers)
    assert response.status_code == 404
