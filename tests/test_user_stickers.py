import asyncio
import itertools

import pytest
import pytest_asyncio
from sqlalchemy import delete, select

from matchnode.models import UserSticker
from matchnode.services.sticker_status import StickerStatus, set_sticker_status


@pytest_asyncio.fixture
async def collector(client, register_user, album_with_stickers):
    _, headers = await register_user("collector")
    await client.put(
        "/users/profile",
        json={"selected_album_id": album_with_stickers["album_id"]},
        headers=headers,
    )
    return headers


@pytest.mark.asyncio
async def test_duplicate_from_missing_records_owned(client, collector, album_with_stickers):
    sticker_id = album_with_stickers["stickers"]["3"]

    response = await client.put(
        f"/user-stickers/{sticker_id}", json={"status": "duplicate"}, headers=collector)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "duplicate"
    assert data["owned"] is True
    assert data["duplicate"] is True
    assert data["sticker"]["number"] == "3"


@pytest.mark.asyncio
async def test_missing_clears_both_flags(client, collector, album_with_stickers):
    sticker_id = album_with_stickers["stickers"]["1"]
    await client.put(f"/user-stickers/{sticker_id}", json={"status": "duplicate"}, headers=collector)

    response = await client.put(
        f"/user-stickers/{sticker_id}", json={"status": "missing"}, headers=collector)
    assert response.status_code == 200
    data = response.json()
    assert data["owned"] is False
    assert data["duplicate"] is False


@pytest.mark.asyncio
async def test_repeated_writes_keep_a_single_record(client, collector, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    sticker_id = album_with_stickers["stickers"]["2"]
    for status in ("owned", "duplicate", "owned"):
        response = await client.put(
            f"/user-stickers/{sticker_id}", json={"status": status}, headers=collector)
        assert response.status_code == 200

    response = await client.get(f"/user-stickers/{album_id}", headers=collector)
    records = response.json()
    assert len(records) == 1
    assert records[0]["status"] == "owned"


@pytest.mark.asyncio
@pytest.mark.parametrize("label,expected", [
    ("yes", "owned"),
    ("double", "duplicate"),
    ("no", "missing"),
])
async def test_legacy_labels_are_accepted(client, collector, album_with_stickers, label, expected):
    sticker_id = album_with_stickers["stickers"]["4"]

    response = await client.post("/user-stickers/", json={
        "sticker_id": sticker_id,
        "status": label,
    }, headers=collector)
    assert response.status_code == 200
    assert response.json()["status"] == expected


@pytest.mark.asyncio
async def test_invalid_status_is_400(client, collector, album_with_stickers):
    sticker_id = album_with_stickers["stickers"]["1"]

    response = await client.put(
        f"/user-stickers/{sticker_id}", json={"status": "maybe"}, headers=collector)
    assert response.status_code == 400
    assert "Invalid sticker status" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_unknown_sticker_is_404(client, collector):
    response = await client.put("/user-stickers/99999", json={"status": "owned"}, headers=collector)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_sticker_from_another_album_is_rejected(client, collector, album_with_stickers):
    admin_headers = album_with_stickers["admin_headers"]
    response = await client.post("/albums/", json={"name": "Other", "year": 2023}, headers=admin_headers)
    other_album_id = response.json()["id"]

    response = await client.post("/user-stickers/", json={
        "sticker_id": album_with_stickers["stickers"]["1"],
        "album_id": other_album_id,
        "status": "owned",
    }, headers=collector)
    assert response.status_code == 400
    assert "does not belong" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_status_filter_and_summary(client, collector, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    stickers = album_with_stickers["stickers"]
    await client.put(f"/user-stickers/{stickers['1']}", json={"status": "owned"}, headers=collector)
    await client.put(f"/user-stickers/{stickers['2']}", json={"status": "duplicate"}, headers=collector)
    await client.put(f"/user-stickers/{stickers['3']}", json={"status": "missing"}, headers=collector)

    response = await client.get(f"/user-stickers/{album_id}?status=owned", headers=collector)
    assert {r["sticker_id"] for r in response.json()} == {stickers["1"], stickers["2"]}

    response = await client.get(f"/user-stickers/{album_id}?status=double", headers=collector)
    assert [r["sticker_id"] for r in response.json()] == [stickers["2"]]

    response = await client.get(f"/user-stickers/{album_id}/summary", headers=collector)
    assert response.status_code == 200
    assert response.json() == {
        "album_id": album_id,
        "total": 5,
        "owned": 2,
        "missing": 3,
        "duplicate": 1,
        "completion_percent": 40,
    }


@pytest.mark.asyncio
async def test_collection_requires_authentication(client, album_with_stickers):
    client.cookies.clear()
    response = await client.get(f"/user-stickers/{album_with_stickers['album_id']}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_concurrent_status_writes_leave_one_valid_record(
        client, collector, album_with_stickers, test_session):
    sticker_id = album_with_stickers["stickers"]["5"]
    targets = ["owned", "duplicate", "missing", "duplicate", "owned"]

    responses = await asyncio.gather(*[
        client.put(f"/user-stickers/{sticker_id}", json={"status": s}, headers=collector)
        for s in targets
    ])
    assert all(r.status_code == 200 for r in responses)

    result = await test_session.execute(
        select(UserSticker).where(UserSticker.sticker_id == sticker_id))
    records = result.scalars().all()
    assert len(records) == 1
    record = records[0]
    assert record.owned or not record.duplicate
    assert record.status in targets


@pytest.mark.asyncio
async def test_every_status_sequence_keeps_duplicate_owned(
        register_user, album_with_stickers, test_session):
    user_id, _ = await register_user("sequencer")
    sticker_id = album_with_stickers["stickers"]["1"]

    for sequence in itertools.product(list(StickerStatus), repeat=3):
        await test_session.execute(delete(UserSticker).where(UserSticker.user_id == user_id))
        await test_session.commit()
        for target in sequence:
            record = await set_sticker_status(test_session, user_id, sticker_id, target)
            assert record.owned or not record.duplicate
            assert record.status == target.value


@pytest.mark.asyncio
async def test_collection_listing_sorted_by_number(client, collector, album_with_stickers):
    album_id = album_with_stickers["album_id"]
    response = await client.post(
        f"/albums/{album_id}/stickers",
        json={"stickers": [{"number": "FWC1", "name": "Logo"}, {"number": "10", "name": "Ten"}]},
        headers=album_with_stickers["admin_headers"],
    )
    created = {s["number"]: s["id"] for s in response.json()}

    for sticker_id in (created["FWC1"], created["10"], album_with_stickers["stickers"]["2"]):
        await client.put(f"/user-stickers/{sticker_id}", json={"status": "owned"}, headers=collector)

    response = await client.get(f"/user-stickers/{album_id}", headers=collector)
    assert [r["sticker"]["number"] for r in response.json()] == ["2", "10", "FWC1"]
