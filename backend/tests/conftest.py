"""Test fixtures: a fresh in-memory SQLite database per test.

The app reads its settings from the environment on first import, so the
variables below have to be in place before anything under backend/ is
imported. The Google client is registered with dummy credentials; tests that
touch the OAuth flow stub out the network calls on it.
"""

import os

os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["CLIENT_URL"] = "http://localhost:3000"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import models  # noqa: F401  registers the user table on SQLModel.metadata
from services.identity import IdentityService
from services.password_hasher import BcryptHasher
from services.token_service import TokenService
from services.user_store import SQLUserStore


@pytest_asyncio.fixture()
async def session_factory():
    """Per-test engine on a single shared in-memory connection."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def tokens():
    return TokenService("test-secret")


@pytest.fixture()
def hasher():
    return BcryptHasher(rounds=4)


@pytest.fixture()
def store(db_session):
    return SQLUserStore(db_session)


@pytest.fixture()
def identity(store, hasher, tokens):
    return IdentityService(store, hasher, tokens)


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with the app's database session pointed at the test DB.

    Auth is left untouched so protected routes run the real bearer check.
    """
    from database import get_session
    from main import app

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
