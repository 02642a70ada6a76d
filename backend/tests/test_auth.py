"""Tests for authentication endpoints and role gates."""

from restaurant_pos.models.user import UserStatus


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_check(client):
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "healthy"


def test_login_success(client, admin_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "testpass123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["access_token"]
    assert body["data"]["user"]["role"] == "admin"


def test_login_wrong_password(client, admin_user):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "wrongpass"},
    )
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "unauthorized"


def test_login_unknown_user(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "testpass123"},
    )
    assert response.status_code == 401


def test_login_inactive_user(client, db_session, cashier_user):
    cashier_user.status = UserStatus.INACTIVE
    db_session.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "cashier@example.com", "password": "testpass123"},
    )
    assert response.status_code == 401


def test_login_validation_error(client):
    response = client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_error"
    assert {e["field"] for e in body["errors"]} >= {"email", "password"}


def test_me(client, cashier_headers):
    response = client.get("/api/v1/auth/me", headers=cashier_headers)
    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "cashier@example.com"


def test_requires_token(client):
    response = client.get("/api/v1/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_invalid_token(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer invalid"})
    assert response.status_code == 401


def test_disabled_user_token_rejected(client, db_session, cashier_user, cashier_headers):
    cashier_user.status = UserStatus.INACTIVE
    db_session.commit()

    response = client.get("/api/v1/tables", headers=cashier_headers)
    assert response.status_code == 401


def test_logout_revokes_token(client, manager_headers):
    response = client.post("/api/v1/auth/logout", headers=manager_headers)
    assert response.status_code == 200

    response = client.get("/api/v1/auth/me", headers=manager_headers)
    assert response.status_code == 401


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
