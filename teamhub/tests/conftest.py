"""
Shared pytest configuration for the TeamHub test suite.

Uses an in-memory SQLite database per test (shared across connections via
StaticPool) and drives the API through httpx's ASGI transport.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "teamhub-test-secret")

import pytest_asyncio
from datetime import datetime, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from teamhub.api.main import app
from teamhub.database.db import Base, get_db_session
from teamhub.services import data_service, player_service
from teamhub.services.auth_service import get_token_service, hash_password

TEST_PASSWORD = "secret123"
# Hash once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with all tables created and foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves FK enforcement off unless asked
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    """A database session for service-level tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client bound to the app, with a request-scoped session per call."""

    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_player(session_maker):
    """Factory: create a player row directly, optionally as admin."""
    created = []

    async def _make(name=None, email=None, phone="555-123-4567", role="player"):
        index = len(created) + 1
        async with session_maker() as session:
            player = await player_service.create_player(
                session,
                name=name or f"Player {index}",
                email=email or f"player{index}@example.com",
                phone=phone,
                password_hash=TEST_PASSWORD_HASH,
            )
            if role == "admin":
                player = await player_service.promote_to_admin(session, player["id"])
        created.append(player)
        return player

    return _make


@pytest_asyncio.fixture
async def make_team(session_maker):
    """Factory: create a team captained by ``captain``."""

    async def _make(captain, name="Sharks"):
        async with session_maker() as session:
            return await data_service.create_team(session, name, captain["id"])

    return _make


@pytest_asyncio.fixture
async def add_member(session_maker):
    """Factory: add ``player`` to ``team``."""

    async def _add(team, player, is_captain=False):
        async with session_maker() as session:
            return await data_service.add_team_member(
                session, team["id"], player["id"], is_captain=is_captain
            )

    return _add


@pytest_asyncio.fixture
async def make_game(session_maker):
    """Factory: schedule a game for ``team``."""

    async def _make(team, location="Main Gym", opposing_team="Tigers"):
        async with session_maker() as session:
            return await data_service.create_game(
                session,
                location=location,
                opposing_team=opposing_team,
                time=datetime(2026, 5, 1, 18, 30, tzinfo=timezone.utc),
                notes=None,
                team_id=team["id"],
            )

    return _make


@pytest_asyncio.fixture
async def make_attendance(session_maker):
    """Factory: record an attendance row."""

    async def _make(player, game, status="present"):
        async with session_maker() as session:
            return await data_service.create_attendance(session, player["id"], game["id"], status)

    return _make


@pytest_asyncio.fixture
async def auth_headers():
    """Build bearer headers for a player dict."""

    def _headers(player):
        token = get_token_service().create_access_token(player["id"], player["role"])
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def player_password():
    """Plain-text password of every player built by ``make_player``."""
    return TEST_PASSWORD
