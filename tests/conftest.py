import mongomock
import pytest
from fastapi.testclient import TestClient

import settings
from create_admin import create_admin
from database import get_db
from main import app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def db():
    return mongomock.MongoClient()["farm-equipment-test"]


@pytest.fixture
def client(db, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(client, db):
    create_admin(db, ADMIN_EMAIL, ADMIN_PASSWORD, username="admin")
    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return res.json()["token"]


@pytest.fixture
def invitation_code(client, admin_token):
    res = client.post("/api/auth/invitation-code", headers=auth_header(admin_token))
    assert res.status_code == 201
    return res.json()["code"]


@pytest.fixture
def tractor(client):
    res = client.post(
        "/api/equipment",
        json={
            "name": "Big Red",
            "manufacturer": "Case IH",
            "model": "Magnum 340",
            "category": "Tractor",
            "status": "Active",
        },
    )
    assert res.status_code == 201
    return res.json()
