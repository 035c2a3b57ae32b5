import os
import sys
from pathlib import Path

import httpx
import pytest_asyncio
from sqlalchemy import text, update

# Ensure project root on path before importing matchnode modules
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Configure the app to use a local SQLite database during tests
_test_db_path = project_root / "test.db"
os.environ["APP_DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_db_path.as_posix()}"
os.environ["APP_DEBUG"] = "false"

# Start each test session from a clean database file
if _test_db_path.exists():
    _test_db_path.unlink()


async def _clear_database(session) -> None:
    """Remove all data from the database between tests."""
    from matchnode.models import Base

    await session.execute(text("PRAGMA foreign_keys=OFF"))
    for table in reversed(Base.metadata.sorted_tables):
        await session.execute(table.delete())
    await session.commit()
    await session.execute(text("PRAGMA foreign_keys=ON"))


@pytest_asyncio.fixture(scope="session", autouse=True)
async def setup_database():
    """Create all tables for the duration of the test session."""
    from matchnode.database import create_tables, drop_tables, engine

    await create_tables()
    yield
    await drop_tables()
    await engine.dispose()
    if _test_db_path.exists():
        _test_db_path.unlink()


@pytest_asyncio.fixture
async def test_session(setup_database):
    """Provide an async database session to tests that need direct access."""
    from matchnode.database import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def clean_database_after_test(setup_database):
    """Clean up any data created via API calls after each test."""
    yield
    from matchnode.database import AsyncSessionLocal
    from matchnode.routers.matches import _message_send_log

    _message_send_log.clear()
    async with AsyncSessionLocal() as session:
        await _clear_database(session)


@pytest_asyncio.fixture
async def client():
    from matchnode.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def register_user(client):
    """Register a collector and return (user_id, auth headers)."""

    async def _register(nickname: str, postal_code: str = "20121", radius_km: int = 10, admin: bool = False):
        response = await client.post("/auth/register", json={
            "nickname": nickname,
            "password": "secret123",
            "postal_code": postal_code,
            "radius_km": radius_km,
        })
        assert response.status_code == 200, response.text
        data = response.json()
        user_id = data["user"]["id"]

        if admin:
            from matchnode.database import AsyncSessionLocal
            from matchnode.models import User

            async with AsyncSessionLocal() as session:
                await session.execute(
                    update(User).where(User.id == user_id).values(is_admin=True))
                await session.commit()

        # Cookie jar is shared by the client; tests pass explicit headers
        client.cookies.clear()
        return user_id, {"Authorization": f"Bearer {data['access_token']}"}

    return _register


@pytest_asyncio.fixture
async def album_with_stickers(client, register_user):
    """An admin, an active album and five stickers numbered 1..5."""
    admin_id, admin_headers = await register_user("admin", admin=True)

    response = await client.post(
        "/albums/", json={"name": "Calciatori 2024", "year": 2024}, headers=admin_headers)
    assert response.status_code == 200, response.text
    album = response.json()

    response = await client.post(
        f"/albums/{album['id']}/stickers",
        json={"stickers": [{"number": str(n), "name": f"Player {n}"} for n in range(1, 6)]},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    stickers = {s["number"]: s["id"] for s in response.json()}

    return {
        "album_id": album["id"],
        "stickers": stickers,
        "admin_headers": admin_headers,
    }
