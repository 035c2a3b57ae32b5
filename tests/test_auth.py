import asyncio

import pytest


@pytest.mark.asyncio
async def test_register_returns_user_and_token(client):
    response = await client.post("/auth/register", json={
        "nickname": "marco_10",
        "password": "secret123",
        "postal_code": "20121",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["nickname"] == "marco_10"
    assert data["user"]["radius_km"] == 10
    assert "password" not in data["user"]
    assert "password_hash" not in data["user"]
    assert data["access_token"]
    assert "session=" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_register_duplicate_nickname(client, register_user):
    await register_user("marco_10")

    response = await client.post("/auth/register", json={
        "nickname": "MARCO_10",
        "password": "secret123",
        "postal_code": "20121",
    })
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Nickname already taken"


@pytest.mark.asyncio
async def test_register_validation_error_is_400_with_first_message(client):
    response = await client.post("/auth/register", json={
        "nickname": "marco_10",
        "password": "123",
        "postal_code": "20121",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["message"].startswith("password:")
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_login_and_me(client, register_user):
    await register_user("luca")

    response = await client.post("/auth/login", json={"nickname": "luca", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["nickname"] == "luca"


@pytest.mark.asyncio
async def test_login_wrong_password(client, register_user):
    await register_user("luca")

    response = await client.post("/auth/login", json={"nickname": "luca", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthorized"


@pytest.mark.asyncio
async def test_session_cookie_authenticates(client, register_user):
    await register_user("giulia")

    response = await client.post("/auth/login", json={"nickname": "giulia", "password": "secret123"})
    token = response.json()["access_token"]
    client.cookies.clear()

    response = await client.get("/auth/me", headers={"Cookie": f"session={token}"})
    assert response.status_code == 200
    assert response.json()["nickname"] == "giulia"


@pytest.mark.asyncio
async def test_me_requires_authentication(client):
    client.cookies.clear()
    response = await client.get("/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(client):
    response = await client.post("/auth/logout")
    assert response.status_code == 200
    assert 'session=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_update_profile_selects_album(client, register_user, album_with_stickers):
    _, headers = await register_user("anna")

    response = await client.put("/users/profile", json={
        "selected_album_id": album_with_stickers["album_id"],
        "radius_km": 25,
        "postal_code": "00184",
    }, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["selected_album_id"] == album_with_stickers["album_id"]
    assert data["radius_km"] == 25
    assert data["postal_code"] == "00184"


@pytest.mark.asyncio
async def test_update_profile_unknown_album(client, register_user):
    _, headers = await register_user("anna")

    response = await client.put("/users/profile", json={"selected_album_id": 9999}, headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_login_ignores_nickname_case(client, register_user):
    await register_user("Luca")

    response = await client.post("/auth/login", json={"nickname": "lUCA", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["nickname"] == "Luca"


@pytest.mark.asyncio
async def test_concurrent_registration_same_nickname(client):
    payload = {"nickname": "twin", "password": "secret123", "postal_code": "20121"}

    responses = await asyncio.gather(
        client.post("/auth/register", json=payload),
        client.post("/auth/register", json=payload),
    )
    assert sorted(r.status_code for r in responses) == [200, 400]
    rejected = [r for r in responses if r.status_code == 400][0]
    assert rejected.json()["error"]["message"] == "Nickname already taken"
