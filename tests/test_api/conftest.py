"""API test fixtures -- AsyncClient per listener with dependency overrides."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from cargo_hold.api.deps import get_app_settings, get_db, get_file_store, get_generator, get_storage
from cargo_hold.api.main import create_private_app, create_public_app
from cargo_hold.common.config import Settings
from cargo_hold.storage.object_store import ObjectStorageClient
from cargo_hold.stores.postgres_store import FileStore


@pytest.fixture
def settings():
    return Settings(_env_file=None, max_file_size_bytes=1024, default_page_limit=10, max_page_limit=100)


@pytest.fixture
def mock_store():
    store = AsyncMock(spec=FileStore)
    store.commit = AsyncMock()
    store.rollback = AsyncMock()
    return store


@pytest.fixture
def mock_storage():
    storage = AsyncMock(spec=ObjectStorageClient)
    storage.download = AsyncMock(return_value=b"blob-bytes")
    return storage


@pytest.fixture
def mock_api_db_session():
    session = AsyncMock()
    session.execute = AsyncMock()
    return session


def _override(application, settings, store, storage, generator, session):
    application.dependency_overrides[get_app_settings] = lambda: settings
    application.dependency_overrides[get_file_store] = lambda: store
    application.dependency_overrides[get_storage] = lambda: storage
    application.dependency_overrides[get_generator] = lambda: generator
    application.dependency_overrides[get_db] = lambda: session
    return application


@pytest.fixture
def public_app(settings, mock_store, mock_storage, generator, mock_api_db_session):
    return _override(create_public_app(), settings, mock_store, mock_storage, generator, mock_api_db_session)


@pytest.fixture
def private_app(settings, mock_store, mock_storage, generator, mock_api_db_session):
    return _override(create_private_app(), settings, mock_store, mock_storage, generator, mock_api_db_session)


@pytest.fixture
async def public_client(public_app):
    transport = ASGITransport(app=public_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def private_client(private_app):
    transport = ASGITransport(app=private_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
