"""Shared test fixtures for the Cargo Hold test suite."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_hold.common.models import FileLink, Purpose, StoredFile, Tenant
from cargo_hold.identity import SnowflakeGenerator, generate_prefixed_id

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_db_session():
    """Mock async SQLAlchemy session."""
    session = AsyncMock(spec=AsyncSession)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def generator():
    return SnowflakeGenerator(worker_id=1, datacenter_id=1)


@pytest.fixture
def sample_tenant(generator):
    oid = generator.generate()
    return Tenant(
        oid=oid,
        id=generate_prefixed_id("tenant", oid),
        name="acme",
        created_at=CREATED,
        updated_at=CREATED,
        total_files_bytes=0,
        file_count=0,
    )


@pytest.fixture
def sample_purpose(generator):
    oid = generator.generate()
    return Purpose(oid=oid, id=generate_prefixed_id("purpose", oid), slug="document")


@pytest.fixture
def make_file(generator, sample_tenant, sample_purpose):
    """Factory for detached StoredFile rows with tenant and purpose attached."""

    def _make(filename: str = "report.pdf", size: int = 42) -> StoredFile:
        oid = generator.generate()
        file_id = generate_prefixed_id("file", oid)
        file = StoredFile(
            oid=oid,
            id=file_id,
            tenant_oid=sample_tenant.oid,
            filename=filename,
            purpose_oid=sample_purpose.oid,
            bytes=size,
            storage_key=f"{sample_tenant.id}/{file_id}",
            created_at=CREATED,
            updated_at=CREATED,
        )
        file.tenant = sample_tenant
        file.purpose = sample_purpose
        return file

    return _make


@pytest.fixture
def make_link(generator):
    def _make(file: StoredFile, expires_at: datetime, key: str = "k3yK3yk3yK3yk3yK") -> FileLink:
        oid = generator.generate()
        link = FileLink(
            oid=oid,
            id=generate_prefixed_id("link", oid),
            file_oid=file.oid,
            key=key,
            expires_at=expires_at,
            created_at=CREATED,
        )
        link.file = file
        return link

    return _make
