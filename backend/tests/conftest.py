"""Shared test fixtures.

The database is a file-backed SQLite (aiosqlite) created per test; Drive and
the downloader are replaced by in-memory fakes so nothing leaves the process.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from drive_uploader.database import get_db
from drive_uploader.dependencies import get_auth_service, get_file_store, get_orchestrator, rate_limit
from drive_uploader.main import app
from drive_uploader.models import Base
from drive_uploader.services.file_store import FileStore
from drive_uploader.services.google_auth import GoogleAuthService
from drive_uploader.services.token_store import InMemoryTokenStore, OAuthToken
from drive_uploader.services.upload_orchestrator import UploadOrchestrator
from tests.fakes import FakeDownloader, FakeStorage, RecordingSleep

CLIENT_CONFIG = {"client_id": "test-client-id.apps.googleusercontent.com", "client_secret": "test-secret"}


@pytest.fixture
async def session_factory(tmp_path_factory):
    # File-backed so concurrent workers each get their own connection
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def file_store(session_factory):
    return FileStore(session_factory)


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def orchestrator(downloader, storage, file_store, sleep):
    return UploadOrchestrator(downloader, storage, file_store, max_concurrent=3, sleep=sleep)


@pytest.fixture
def token_store():
    return InMemoryTokenStore(
        OAuthToken(access_token="access-1", refresh_token="refresh-1", scope="https://www.googleapis.com/auth/drive.file")
    )


@pytest.fixture
def auth_service(token_store):
    return GoogleAuthService(
        token_store=token_store,
        client_config=dict(CLIENT_CONFIG),
        redirect_uri="http://localhost:3000/auth/google/callback",
    )


@pytest.fixture
async def client(orchestrator, file_store, session_factory, auth_service):
    """Async test client with all collaborators swapped for fakes."""

    async def _db():
        async with session_factory() as session:
            yield session

    async def _no_rate_limit():
        return None

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_file_store] = lambda: file_store
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[rate_limit] = _no_rate_limit

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
