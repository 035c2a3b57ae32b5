import pytest


@pytest.mark.asyncio
async def test_list_albums_only_active(client, album_with_stickers):
    headers = album_with_stickers["admin_headers"]
    response = await client.post(
        "/albums/", json={"name": "Old album", "year": 2010, "is_active": False}, headers=headers)
    assert response.status_code == 200

    response = await client.get("/albums/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "Calciatori 2024"
    assert data["items"][0]["sticker_count"] == 5


@pytest.mark.asyncio
async def test_album_admin_routes_require_admin(client, register_user):
    _, headers = await register_user("plain_user")

    response = await client.post("/albums/", json={"name": "X", "year": 2024}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Admin access required"


@pytest.mark.asyncio
async def test_stickers_sorted_numerically(client, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    await client.post(
        f"/albums/{album_id}/stickers",
        json={"stickers": [{"number": "10", "name": "Ten"}, {"number": "FWC1", "name": "Logo"}]},
        headers=album_with_stickers["admin_headers"],
    )

    response = await client.get(f"/albums/{album_id}/stickers")
    assert response.status_code == 200
    numbers = [s["number"] for s in response.json()]
    assert numbers == ["1", "2", "3", "4", "5", "10", "FWC1"]


@pytest.mark.asyncio
async def test_bulk_import_lines(client, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    response = await client.post(
        f"/albums/{album_id}/stickers/bulk",
        json={"lines": "6|Lautaro Martinez|Inter\n\n7|Rafael Leao"},
        headers=album_with_stickers["admin_headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 2
    assert data["stickers"][0]["team"] == "Inter"
    assert data["stickers"][1]["team"] is None


@pytest.mark.asyncio
async def test_bulk_import_rejects_malformed_line(client, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    response = await client.post(
        f"/albums/{album_id}/stickers/bulk",
        json={"lines": ["8|Good", "just-a-number"]},
        headers=album_with_stickers["admin_headers"],
    )
    assert response.status_code == 400
    assert "Line 2" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_duplicate_sticker_number_conflicts(client, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    response = await client.post(
        f"/albums/{album_id}/stickers",
        json={"stickers": [{"number": "1", "name": "Again"}]},
        headers=album_with_stickers["admin_headers"],
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_unknown_album_is_404(client):
    response = await client.get("/albums/12345")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_delete_album_cascades(client, register_user, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    sticker_id = album_with_stickers["stickers"]["1"]
    _, headers = await register_user("collector")
    await client.put("/users/profile", json={"selected_album_id": album_id}, headers=headers)
    await client.put(f"/user-stickers/{sticker_id}", json={"status": "owned"}, headers=headers)

    response = await client.delete(f"/albums/{album_id}", headers=album_with_stickers["admin_headers"])
    assert response.status_code == 200

    response = await client.get(f"/albums/{album_id}/stickers")
    assert response.status_code == 404

    response = await client.get("/auth/me", headers=headers)
    assert response.json()["selected_album_id"] is None
