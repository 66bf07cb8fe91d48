"""Public, tenant-scoped file endpoints.

The tenant is named by the ``X-Tenant-ID`` header and created on first upload.
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from cargo_hold.api.deps import get_app_settings, get_file_store, get_generator, get_storage, get_tenant_name
from cargo_hold.common.config import Settings
from cargo_hold.common.errors import StorageError
from cargo_hold.common.models import FileResponse, StoredFile
from cargo_hold.identity import SnowflakeGenerator, generate_prefixed_id
from cargo_hold.storage.object_store import ObjectStorageClient
from cargo_hold.stores.postgres_store import FileStore

logger = structlog.get_logger()
router = APIRouter()

OCTET_STREAM = "application/octet-stream"


async def _tenant_file(store: FileStore, tenant_name: str, file_id: str) -> StoredFile:
    tenant = await store.get_tenant_by_name(tenant_name)
    file = await store.get_file(file_id, tenant_oid=tenant.oid) if tenant else None
    if file is None:
        raise HTTPException(status_code=404, detail="Not found")
    return file


@router.post("/files", response_model=FileResponse, response_model_exclude_none=True)
async def upload_file(
    file: UploadFile | None = File(default=None),
    purpose: str | None = Form(default=None),
    tenant_name: str = Depends(get_tenant_name),
    store: FileStore = Depends(get_file_store),
    generator: SnowflakeGenerator = Depends(get_generator),
    storage: ObjectStorageClient = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    """Store an uploaded blob and register it under the caller's tenant."""
    if file is None:
        raise HTTPException(status_code=400, detail="Missing file")

    data = await file.read(settings.max_file_size_bytes + 1)
    if len(data) > settings.max_file_size_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds maximum of {settings.max_file_size_bytes} bytes",
        )
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    if not purpose:
        raise HTTPException(status_code=400, detail="Missing purpose")

    tenant = await store.get_or_create_tenant(tenant_name, generator)
    purpose_row = await store.get_purpose_by_slug(purpose)
    if purpose_row is None:
        raise HTTPException(status_code=400, detail=f"Invalid purpose: {purpose}")

    file_oid = generator.generate()
    file_id = generate_prefixed_id("file", file_oid)
    storage_key = f"{tenant.id}/{file_id}"

    await storage.upload(storage_key, data, file.content_type)
    try:
        stored = await store.create_file(
            oid=file_oid,
            file_id=file_id,
            tenant=tenant,
            purpose=purpose_row,
            filename=file.filename,
            size=len(data),
            storage_key=storage_key,
        )
        await store.commit()
    except Exception:
        await store.rollback()
        try:
            await storage.delete(storage_key)
        except StorageError:
            logger.warning("orphaned_blob", storage_key=storage_key, exc_info=True)
        raise

    logger.info("file_uploaded", file_id=file_id, tenant_id=tenant.id, bytes=len(data), purpose=purpose)
    return FileResponse.from_file(stored, purpose=purpose_row.slug)


@router.get("/files/{file_id}", response_model=FileResponse, response_model_exclude_none=True)
async def get_file(
    file_id: str,
    tenant_name: str = Depends(get_tenant_name),
    store: FileStore = Depends(get_file_store),
):
    file = await _tenant_file(store, tenant_name, file_id)
    return FileResponse.from_file(file, purpose=file.purpose.slug)


@router.get("/files/{file_id}/content")
async def get_file_content(
    file_id: str,
    tenant_name: str = Depends(get_tenant_name),
    store: FileStore = Depends(get_file_store),
    storage: ObjectStorageClient = Depends(get_storage),
):
    file = await _tenant_file(store, tenant_name, file_id)
    content = await storage.download(file.storage_key)
    return Response(content=content, media_type=OCTET_STREAM)
