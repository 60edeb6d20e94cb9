"""Pytest fixtures for the Ratings Platform test suite.

Provides:
- An in-memory MongoDB (mongomock) behind a fresh RecordStore per test
- A store seeded with the bootstrap data
- A FastAPI TestClient wired to that store and a login helper
"""

import os
import uuid

# Must be set before config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import mongomock
import pytest
from fastapi.testclient import TestClient

from main import app, get_record_store
from record_store import RecordStore
from seed import seed_bootstrap_data

ADMIN = ("admin@example.com", "Admin123!")
NORMAL_USER = ("john@example.com", "User123!")
STORE_OWNER = ("jane@example.com", "Store123!")


@pytest.fixture
def record_store() -> RecordStore:
    db = mongomock.MongoClient()[f"ratings_test_{uuid.uuid4().hex}"]
    return RecordStore(db)


@pytest.fixture
def seeded_store(record_store: RecordStore) -> RecordStore:
    seed_bootstrap_data(record_store)
    return record_store


@pytest.fixture
def client(seeded_store: RecordStore):
    app.dependency_overrides[get_record_store] = lambda: seeded_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient):
    """Return a function that logs in and builds the Authorization header."""

    def _login(credentials) -> dict:
        email, password = credentials
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


def user_payload(**overrides) -> dict:
    payload = {
        "name": "Alexandra Testington Smith",
        "email": "alexandra@example.com",
        "address": "42 Testing Lane, Pytest City",
        "password": "Secret123!",
    }
    payload.update(overrides)
    return payload
