# tests/conftest.py — Shared test fixtures
import os

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"

from models import Base, User
from auth import AuthService
from database import get_db_session
from main import app


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db_session, username: str, name: str, password: str) -> User:
    user = User(
        username=username,
        name=name,
        email=f"{username}@kanbex.dev",
        password_hash=AuthService.hash_password(password),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session):
    """Create a test user"""
    return await _make_user(db_session, "alice", "Alice Example", "TestPassword123!")


@pytest_asyncio.fixture
async def other_user(db_session):
    """A second user who must never see test_user's data"""
    return await _make_user(db_session, "bob", "Bob Example", "OtherPassword123!")


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = AuthService.create_access_token(user.external_id)
    return {"Authorization": f"Bearer {token}"}


async def create_board(client: AsyncClient, headers: dict, title: str = "Sprint 1", **extra) -> dict:
    resp = await client.post("/api/board", json={"title": title, **extra}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["board"]


async def create_stage(client: AsyncClient, headers: dict, board_id: str, title: str = "To Do", **extra) -> dict:
    resp = await client.post(
        "/api/stage",
        json={"title": title, "board_external_id": board_id, **extra},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["stage"]


async def create_task(client: AsyncClient, headers: dict, stage_id: str, title: str = "Write tests", **extra) -> dict:
    resp = await client.post(
        "/api/task",
        json={"title": title, "stage_external_id": stage_id, **extra},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["task"]
