"""Tests for reservation endpoints."""

from restaurant_pos.core.config import settings

BOOKING_DATE = "2030-01-15"


def _booking(table, **overrides):
    body = {
        "customer_name": "Alice",
        "customer_phone": "555-0100",
        "customer_email": "alice@example.com",
        "party_size": 2,
        "date": BOOKING_DATE,
        "time": "19:00",
        "duration": 120,
        "table_id": table.id,
        "occasion": "birthday",
    }
    body.update(overrides)
    return body


def test_create_reservation(client, tables, cashier_headers):
    response = client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)
    assert response.status_code == 201
    reservation = response.json()["data"]["reservation"]
    assert reservation["status"] == "confirmed"
    assert reservation["end_time"] == "21:00"
    assert reservation["table_number"] == "T2"
    assert reservation["occasion"] == "birthday"
    assert reservation["crosses_midnight"] is False
    assert reservation["reservation_number"].startswith("RES-")


def test_overlap_returns_conflict(client, tables, cashier_headers):
    client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)

    response = client.post(
        "/api/v1/reservations", json=_booking(tables["T2"], customer_name="Bob", time="20:00"),
        headers=cashier_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "conflict"
    assert body["errors"][0]["conflicts"][0]["time"] == "19:00"


def test_back_to_back_allowed(client, tables, cashier_headers):
    client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)

    response = client.post(
        "/api/v1/reservations", json=_booking(tables["T2"], customer_name="Carol", time="21:00"),
        headers=cashier_headers,
    )
    assert response.status_code == 201


def test_capacity_exceeded(client, tables, cashier_headers):
    response = client.post(
        "/api/v1/reservations", json=_booking(tables["T1"], party_size=4), headers=cashier_headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "capacity_exceeded"


def test_invalid_time_format(client, tables, cashier_headers):
    response = client.post(
        "/api/v1/reservations", json=_booking(tables["T2"], time="25:00"), headers=cashier_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "time"


def test_duration_bounds(client, tables, cashier_headers):
    response = client.post(
        "/api/v1/reservations", json=_booking(tables["T2"], duration=15), headers=cashier_headers,
    )
    assert response.status_code == 422


def test_kitchen_cannot_book(client, tables, kitchen_headers):
    response = client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=kitchen_headers)
    assert response.status_code == 403


def test_list_and_filter(client, tables, cashier_headers):
    client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)
    client.post(
        "/api/v1/reservations", json=_booking(tables["T3"], date="2030-01-16"), headers=cashier_headers,
    )

    response = client.get(f"/api/v1/reservations?date={BOOKING_DATE}", headers=cashier_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["reservations"][0]["table_number"] == "T2"


def test_available_tables(client, tables, cashier_headers):
    client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)

    response = client.get(
        f"/api/v1/reservations/available-tables?date={BOOKING_DATE}&time=19:30&duration=60&partySize=3",
        headers=cashier_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [t["table_number"] for t in data["tables"]] == ["T3"]
    assert data["count"] == 1


def test_update_reservation(client, tables, cashier_headers):
    created = client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)
    reservation_id = created.json()["data"]["reservation"]["id"]

    response = client.put(
        f"/api/v1/reservations/{reservation_id}",
        json={"party_size": 4, "special_requests": "High chair"},
        headers=cashier_headers,
    )
    assert response.status_code == 200
    reservation = response.json()["data"]["reservation"]
    assert reservation["party_size"] == 4
    assert reservation["special_requests"] == "High chair"


def test_status_flow(client, tables, cashier_headers):
    created = client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)
    reservation_id = created.json()["data"]["reservation"]["id"]
    url = f"/api/v1/reservations/{reservation_id}/status"

    response = client.put(url, json={"status": "seated"}, headers=cashier_headers)
    assert response.status_code == 200
    assert response.json()["data"]["reservation"]["status"] == "seated"

    table = client.get(f"/api/v1/tables/{tables['T2'].id}", headers=cashier_headers).json()["data"]["table"]
    assert table["status"] == "occupied"
    assert table["occupied_by"]["reservation_id"] == reservation_id

    response = client.put(url, json={"status": "completed"}, headers=cashier_headers)
    assert response.status_code == 200

    response = client.put(url, json={"status": "cancelled"}, headers=cashier_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state"


def test_delete_requires_manager(client, tables, cashier_headers, manager_headers):
    created = client.post("/api/v1/reservations", json=_booking(tables["T2"]), headers=cashier_headers)
    url = f"/api/v1/reservations/{created.json()['data']['reservation']['id']}"

    assert client.delete(url, headers=cashier_headers).status_code == 403
    assert client.delete(url, headers=manager_headers).status_code == 200
    assert client.get(url, headers=manager_headers).status_code == 404


def test_configured_default_duration(client, tables, cashier_headers, monkeypatch):
    monkeypatch.setattr(settings, "default_reservation_duration", 90)
    body = _booking(tables["T2"])
    del body["duration"]

    response = client.post("/api/v1/reservations", json=body, headers=cashier_headers)
    assert response.status_code == 201
    assert response.json()["data"]["reservation"]["duration"] == 90
    assert response.json()["data"]["reservation"]["end_time"] == "20:30"

    response = client.get(
        f"/api/v1/reservations/available-tables?date={BOOKING_DATE}&time=20:30&partySize=3",
        headers=cashier_headers,
    )
    assert "T2" in [t["table_number"] for t in response.json()["data"]["tables"]]
