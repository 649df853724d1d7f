# tests/test_auth_api.py
from fastapi.testclient import TestClient

PASSWORD = "correct-horse-battery"


def test_register_login_me(client: TestClient, make_user):
    headers = make_user("new@example.com", "student")

    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["role"] == "student"
    assert data["is_active"] is True


def test_duplicate_registration_conflicts(client: TestClient, make_user):
    make_user("dup@example.com", "company")
    response = client.post("/api/auth/register", json={
        "email": "DUP@example.com", "password": PASSWORD, "role": "company"
    })
    assert response.status_code == 409
    assert response.json()["type"] == "Conflict"


def test_admin_cannot_self_register(client: TestClient):
    response = client.post("/api/auth/register", json={
        "email": "boss@example.com", "password": PASSWORD, "role": "admin"
    })
    assert response.status_code == 422


def test_wrong_password(client: TestClient, make_user):
    make_user("who@example.com", "student")
    response = client.post("/api/auth/login", json={"email": "who@example.com", "password": "nope-nope-nope"})
    assert response.status_code == 401


def test_missing_and_bad_token(client: TestClient):
    assert client.get("/api/auth/me").status_code in (401, 403)
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_role_guard(client: TestClient, make_user):
    headers = make_user("stu@example.com", "student")
    response = client.get("/api/companies/profile", headers=headers)
    assert response.status_code == 403


def test_health(client: TestClient, monkeypatch):
    monkeypatch.setattr("ojt_platform.main.test_mongo_connection", lambda: True)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "mongodb": "connected"}
