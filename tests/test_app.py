from create_admin import create_admin
from database import USERS
from security import verify_password


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["backend"] == "running"


def test_non_object_body_is_a_validation_error(client):
    res = client.post("/api/equipment", json=["tractor"])
    assert res.status_code == 400
    assert res.json()["message"] == "Validation error"


def test_missing_body_is_a_validation_error(client):
    res = client.post("/api/parts")
    assert res.status_code == 400
    assert res.json()["errors"]


def test_client_is_served(client):
    res = client.get("/app/")
    assert res.status_code == 200
    assert "Farm Equipment Tracker" in res.text


def test_create_admin_then_reset(db):
    assert create_admin(db, "admin@example.com", "first-pass", username="admin") == "created"
    assert create_admin(db, "boss@example.com", "second-pass", username="boss") == "updated"
    admins = list(db[USERS].find({"role": "admin"}))
    assert len(admins) == 1
    assert admins[0]["username"] == "boss"
    assert verify_password("second-pass", admins[0]["password"])
