import pytest


@pytest.mark.asyncio
async def test_report_user_and_admin_resolves(client, register_user, album_with_stickers):
    admin_headers = album_with_stickers["admin_headers"]
    reporter_id, reporter = await register_user("reporter")
    reported_id, _ = await register_user("spammer")

    response = await client.post("/reports/", json={
        "type": "spam",
        "description": "Keeps sending links",
        "reported_user_id": reported_id,
    }, headers=reporter)
    assert response.status_code == 200
    report = response.json()
    assert report["status"] == "pending"
    assert report["reporter_id"] == reporter_id

    response = await client.get("/admin/reports?status=pending", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["reporter_nickname"] == "reporter"
    assert data["items"][0]["reported_user_nickname"] == "spammer"

    response = await client.put(
        f"/admin/reports/{report['id']}", json={"status": "resolved"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "resolved"

    response = await client.get("/admin/reports?status=pending", headers=admin_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_cannot_report_self(client, register_user):
    user_id, headers = await register_user("lonely")
    response = await client.post("/reports/", json={
        "type": "other",
        "description": "me",
        "reported_user_id": user_id,
    }, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_report_unknown_user_is_404(client, register_user):
    _, headers = await register_user("reporter")
    response = await client.post("/reports/", json={
        "type": "fake_profile",
        "description": "ghost",
        "reported_user_id": 31337,
    }, headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_report_type_is_400(client, register_user):
    _, headers = await register_user("reporter")
    response = await client.post("/reports/", json={
        "type": "rude",
        "description": "x",
    }, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, register_user):
    _, headers = await register_user("plain")
    for path in ("/admin/reports", "/admin/stats", "/admin/postal-codes"):
        response = await client.get(path, headers=headers)
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_stats(client, register_user, album_with_stickers):
    await register_user("someone")
    response = await client.get("/admin/stats", headers=album_with_stickers["admin_headers"])
    assert response.status_code == 200
    assert response.json() == {
        "total_users": 2,
        "total_matches": 0,
        "active_albums": 1,
        "pending_reports": 0,
    }


@pytest.mark.asyncio
async def test_postal_code_import_updates_existing(client, album_with_stickers):
    headers = album_with_stickers["admin_headers"]
    response = await client.post("/admin/postal-codes", json={"postal_codes": [
        {"code": "20121", "latitude": 45.0, "longitude": 9.0},
    ]}, headers=headers)
    assert response.status_code == 200
    assert response.json()["count"] == 1

    response = await client.post("/admin/postal-codes", json={"postal_codes": [
        {"code": "20121", "latitude": 45.4722, "longitude": 9.1886, "place_name": "Milano"},
        {"code": "00184", "latitude": 41.8955, "longitude": 12.4823},
    ]}, headers=headers)
    assert response.json()["count"] == 2

    response = await client.get("/admin/postal-codes", headers=headers)
    codes = response.json()
    assert [c["code"] for c in codes] == ["00184", "20121"]
    assert codes[1]["latitude"] == pytest.approx(45.4722)
    assert codes[1]["place_name"] == "Milano"
