from services import EquipmentService


TIMESTAMPS = ("createdAt", "updatedAt")


def strip_timestamps(record):
    return {k: v for k, v in record.items() if k not in TIMESTAMPS}


def test_create_returns_input_fields(client, tractor):
    assert tractor["id"]
    assert tractor["name"] == "Big Red"
    assert tractor["category"] == "Tractor"
    assert tractor["documents"] == [] and tractor["images"] == []
    assert tractor["createdAt"] == tractor["updatedAt"]

    fetched = client.get(f"/api/equipment/{tractor['id']}").json()
    assert strip_timestamps(fetched) == strip_timestamps(tractor)


def test_list(client, tractor):
    res = client.get("/api/equipment")
    assert res.status_code == 200
    assert [e["id"] for e in res.json()] == [tractor["id"]]


def test_create_lists_all_missing_fields(client):
    res = client.post("/api/equipment", json={"name": "Combine"})
    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Missing required fields: manufacturer, model, category, status"
    assert body["errors"] == ["manufacturer", "model", "category", "status"]


def test_create_rejects_bad_enums(client):
    res = client.post(
        "/api/equipment",
        json={"name": "X", "manufacturer": "Y", "model": "Z", "category": "Boat", "status": "Sunk"},
    )
    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Validation error"
    assert len(body["errors"]) == 2


def test_update_merges_and_revalidates(client, tractor):
    res = client.patch(f"/api/equipment/{tractor['id']}", json={"status": "In Maintenance"})
    assert res.status_code == 200
    assert res.json()["status"] == "In Maintenance"
    assert res.json()["name"] == "Big Red"

    res = client.patch(f"/api/equipment/{tractor['id']}", json={"name": "", "status": "Broken"})
    assert res.status_code == 400
    assert len(res.json()["errors"]) == 2
    assert client.get(f"/api/equipment/{tractor['id']}").json()["status"] == "In Maintenance"


def test_update_ignores_server_fields(client, tractor):
    res = client.patch(
        f"/api/equipment/{tractor['id']}",
        json={"id": "000000000000000000000000", "createdAt": "1999-01-01T00:00:00", "model": "Magnum 380"},
    )
    assert res.status_code == 200
    assert res.json()["id"] == tractor["id"]
    assert res.json()["createdAt"] == client.get(f"/api/equipment/{tractor['id']}").json()["createdAt"]
    assert res.json()["model"] == "Magnum 380"


def test_unknown_and_malformed_ids(client):
    missing = "64b7f0c2a1b2c3d4e5f60718"
    assert client.get(f"/api/equipment/{missing}").status_code == 404
    assert client.get("/api/equipment/not-an-id").status_code == 404
    assert client.patch(f"/api/equipment/{missing}", json={"status": "Active"}).status_code == 404
    res = client.delete(f"/api/equipment/{missing}")
    assert res.status_code == 404
    assert res.json()["message"] == "Equipment not found"


def test_delete(client, tractor):
    res = client.delete(f"/api/equipment/{tractor['id']}")
    assert res.status_code == 200
    assert res.json() == {"message": "Equipment deleted successfully"}
    assert client.get(f"/api/equipment/{tractor['id']}").status_code == 404


def test_attach_document_and_image(client, tractor, tmp_path):
    res = client.post(
        f"/api/equipment/{tractor['id']}/documents",
        files={"file": ("manual.pdf", b"%PDF-1.4 manual", "application/pdf")},
    )
    assert res.status_code == 200
    document = res.json()["document"]
    assert document["name"] == "manual.pdf"
    assert document["path"].startswith("/uploads/documents/")
    assert document["path"].endswith(".pdf")
    stored = tmp_path / "documents" / document["path"].rsplit("/", 1)[1]
    assert stored.read_bytes() == b"%PDF-1.4 manual"

    res = client.post(
        f"/api/equipment/{tractor['id']}/images",
        files={"file": ("front.jpg", b"jpeg", "image/jpeg")},
    )
    assert res.status_code == 200

    record = client.get(f"/api/equipment/{tractor['id']}").json()
    assert [d["name"] for d in record["documents"]] == ["manual.pdf"]
    assert [i["name"] for i in record["images"]] == ["front.jpg"]


def test_attach_to_missing_record_or_bad_kind(client, tractor):
    upload = {"file": ("a.txt", b"a", "text/plain")}
    res = client.post("/api/equipment/64b7f0c2a1b2c3d4e5f60718/documents", files=upload)
    assert res.status_code == 404
    res = client.post(f"/api/equipment/{tractor['id']}/receipts", files=upload)
    assert res.status_code == 400


def test_update_keeps_attachments_added_after_read(db, tractor, monkeypatch):
    service = EquipmentService(db)
    read = service._find

    def read_then_attach(record_id):
        doc = read(record_id)
        # an upload lands between the read and the write
        db["equipment"].update_one(
            {"_id": doc["_id"]},
            {"$push": {"images": {"name": "side.jpg", "path": "/uploads/images/side.jpg"}}},
        )
        return doc

    monkeypatch.setattr(service, "_find", read_then_attach)
    updated = service.update(tractor["id"], {"status": "Retired"})
    assert updated["status"] == "Retired"
    assert [i["name"] for i in updated["images"]] == ["side.jpg"]


def test_patch_cannot_replace_attachments(client, tractor):
    client.post(
        f"/api/equipment/{tractor['id']}/documents",
        files={"file": ("manual.pdf", b"pdf", "application/pdf")},
    )
    res = client.patch(
        f"/api/equipment/{tractor['id']}",
        json={"documents": [{"name": "x", "path": "/etc/passwd"}], "images": []},
    )
    assert res.status_code == 200
    assert [d["name"] for d in res.json()["documents"]] == ["manual.pdf"]
