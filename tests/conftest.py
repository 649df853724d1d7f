# tests/conftest.py
import logging

import mongomock
import pytest
from fastapi.testclient import TestClient

from ojt_platform.db import mongodb

# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PASSWORD = "correct-horse-battery"


# --- In-memory MongoDB ---
@pytest.fixture(autouse=True)
def mongo():
    """
    Swap the MongoClient singleton for a fresh mongomock client per test.
    Services fetch collections on construction, so every request sees it.
    """
    original_client, original_db = mongodb._client, mongodb._db
    mongodb._client = mongomock.MongoClient()
    mongodb._db = None
    yield mongodb.get_mongo_db()
    mongodb._client, mongodb._db = original_client, original_db


# --- TestClient Fixture ---
@pytest.fixture
def client(mongo):
    """App client; entering the context runs startup (index creation) on mongomock."""
    from ojt_platform.main import app
    with TestClient(app) as c:
        yield c


# --- Account helpers ---
def register_and_login(client: TestClient, email: str, role: str) -> dict:
    response = client.post("/api/auth/register", json={"email": email, "password": PASSWORD, "role": role})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def make_user(client):
    """Register + login; returns auth headers."""
    return lambda email, role: register_and_login(client, email, role)


@pytest.fixture
def admin_headers(client):
    from ojt_platform.create_admin import create_admin
    create_admin("admin@example.com", PASSWORD)
    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def student_headers(client):
    headers = register_and_login(client, "student@example.com", "student")
    response = client.put("/api/students/profile", headers=headers, json={
        "first_name": "Ana",
        "last_name": "Reyes",
        "city": "Manila",
        "skills": [
            {"name": "Python", "level": "Advanced"},
            {"name": "SQL", "level": "Intermediate"},
        ],
        "preferences": {"job_types": ["internship"], "locations": ["Manila"], "remote": False},
    })
    assert response.status_code == 200, response.text
    return headers


@pytest.fixture
def company_headers(client):
    headers = register_and_login(client, "hr@acme.example.com", "company")
    response = client.put("/api/companies/profile", headers=headers, json={
        "company_name": "Acme Software",
        "industry": "IT",
        "city": "Manila",
    })
    assert response.status_code == 200, response.text
    return headers


JOB_PAYLOAD = {
    "title": "Backend Intern",
    "description": "Build and maintain internal APIs.",
    "skills_required": [
        {"name": "Python", "level": "Intermediate", "priority": "must-have"},
        {"name": "SQL", "level": "Advanced", "priority": "must-have"},
    ],
    "job_type": "internship",
    "location": {"city": "Manila", "remote": False},
    "status": "active",
}


@pytest.fixture
def job_id(client, company_headers):
    response = client.post("/api/jobs", headers=company_headers, json=JOB_PAYLOAD)
    assert response.status_code == 201, response.text
    return response.json()["job_id"]
