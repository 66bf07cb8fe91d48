"""FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_hold.api.pagination import KeysetPaginator
from cargo_hold.common.config import Settings, get_settings
from cargo_hold.common.models import StoredFile
from cargo_hold.identity import SnowflakeGenerator
from cargo_hold.storage.object_store import ObjectStorageClient
from cargo_hold.stores.postgres_store import FileKeysetSource, FileStore


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_app_settings(request: Request) -> Settings:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def get_generator(request: Request) -> SnowflakeGenerator:
    generator: SnowflakeGenerator = request.app.state.generator
    return generator


def get_storage(request: Request) -> ObjectStorageClient:
    storage: ObjectStorageClient = request.app.state.storage
    return storage


def get_file_store(db: AsyncSession = Depends(get_db)) -> FileStore:
    return FileStore(db)


def get_file_paginator(
    store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_app_settings),
) -> KeysetPaginator[StoredFile]:
    return KeysetPaginator(
        FileKeysetSource(store),
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )


def get_tenant_name(x_tenant_id: str | None = Header(default=None)) -> str:
    """The caller's tenant, taken from the ``X-Tenant-ID`` header."""
    if not x_tenant_id:
        raise HTTPException(status_code=400, detail="Missing X-Tenant-ID header")
    return x_tenant_id
