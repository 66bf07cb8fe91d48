"""Private (admin) endpoints -- unscoped file management, listing, and links."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from cargo_hold.api.deps import get_file_paginator, get_file_store, get_generator, get_storage
from cargo_hold.api.pagination import KeysetPaginator, PageRequest, SortOrder
from cargo_hold.common.models import (
    CreateLinkRequest,
    FileLinkResponse,
    FileResponse,
    ListFilesResponse,
    PaginationResponse,
    StoredFile,
    UpdateFileRequest,
)
from cargo_hold.identity import SnowflakeGenerator
from cargo_hold.storage.object_store import ObjectStorageClient
from cargo_hold.stores.postgres_store import FileStore

logger = structlog.get_logger()
router = APIRouter()


def _describe(file: StoredFile) -> FileResponse:
    return FileResponse.from_file(file, purpose=file.purpose.slug, tenant_id=file.tenant.id)


async def _require_file(store: FileStore, file_id: str) -> StoredFile:
    file = await store.get_file(file_id)
    if file is None:
        raise HTTPException(status_code=404, detail="Not found")
    return file


@router.get("/files", response_model=ListFilesResponse)
async def list_files(
    tenant_id: str | None = None,
    limit: int | None = None,
    order: SortOrder = SortOrder.DESC,
    before: str | None = None,
    after: str | None = None,
    store: FileStore = Depends(get_file_store),
    paginator: KeysetPaginator[StoredFile] = Depends(get_file_paginator),
):
    """List files ordered by creation, newest first unless ``order=asc``.

    ``after``/``before`` take file ids from a previous page. ``limit`` is
    clamped to the configured bounds rather than rejected.
    """
    scope = None
    if tenant_id is not None:
        tenant = await store.get_tenant_by_id(tenant_id)
        if tenant is None:
            raise HTTPException(status_code=400, detail="Invalid tenant_id")
        scope = tenant.oid

    page = await paginator.paginate(
        PageRequest(order=order, limit=limit, after=after, before=before),
        scope=scope,
    )
    return ListFilesResponse(
        items=[_describe(f) for f in page.items],
        pagination=PaginationResponse(
            has_more_before=page.has_more_before,
            has_more_after=page.has_more_after,
        ),
    )


@router.get("/files/{file_id}", response_model=FileResponse)
async def get_file(file_id: str, store: FileStore = Depends(get_file_store)):
    return _describe(await _require_file(store, file_id))


@router.put("/files/{file_id}", response_model=FileResponse)
async def update_file(
    file_id: str,
    payload: UpdateFileRequest,
    store: FileStore = Depends(get_file_store),
):
    file = await _require_file(store, file_id)

    purpose = None
    if payload.purpose is not None:
        purpose = await store.get_purpose_by_slug(payload.purpose)
        if purpose is None:
            raise HTTPException(status_code=400, detail=f"Invalid purpose: {payload.purpose}")

    updated = await store.update_file(file, filename=payload.filename, purpose=purpose)
    await store.commit()
    return _describe(updated)


@router.delete("/files/{file_id}", response_model=FileResponse)
async def delete_file(
    file_id: str,
    store: FileStore = Depends(get_file_store),
    storage: ObjectStorageClient = Depends(get_storage),
):
    """Delete the blob, then the row. Links to the file go with it."""
    file = await _require_file(store, file_id)
    response = _describe(file)

    await storage.delete(file.storage_key)
    await store.delete_file(file)
    await store.commit()

    logger.info("file_deleted", file_id=file.id, tenant_id=response.tenant_id, bytes=file.bytes)
    return response


@router.post("/links", response_model=FileLinkResponse)
async def create_link(
    payload: CreateLinkRequest,
    store: FileStore = Depends(get_file_store),
    generator: SnowflakeGenerator = Depends(get_generator),
):
    file = await store.get_file(payload.file_id)
    if file is None:
        raise HTTPException(status_code=400, detail="Invalid file_id")

    try:
        link = await store.create_link(file, generator, expires_in=payload.expires_in, key=payload.key)
        await store.commit()
    except IntegrityError:
        await store.rollback()
        raise HTTPException(status_code=409, detail="Link key already in use")

    logger.info("link_created", link_id=link.id, file_id=file.id, expires_at=link.expires_at.isoformat())
    return FileLinkResponse.from_link(link, file_id=file.id)


@router.get("/links/{link_id}", response_model=FileLinkResponse)
async def get_link(link_id: str, store: FileStore = Depends(get_file_store)):
    link = await store.get_link(link_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Not found")
    return FileLinkResponse.from_link(link, file_id=link.file.id)


@router.delete("/links/{link_id}", response_model=FileLinkResponse)
async def delete_link(link_id: str, store: FileStore = Depends(get_file_store)):
    link = await store.get_link(link_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Not found")

    response = FileLinkResponse.from_link(link, file_id=link.file.id)
    await store.delete_link(link)
    await store.commit()
    return response
