"""Unauthenticated download through a file link key."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Response

from cargo_hold.api.deps import get_file_store, get_storage
from cargo_hold.storage.object_store import ObjectStorageClient
from cargo_hold.stores.postgres_store import FileStore

router = APIRouter()


@router.get("/f/{link_key}")
async def get_file_by_link(
    link_key: str,
    store: FileStore = Depends(get_file_store),
    storage: ObjectStorageClient = Depends(get_storage),
):
    link = await store.get_link_by_key(link_key)
    if link is None:
        raise HTTPException(status_code=404, detail="Not found")
    if link.expires_at < datetime.now(UTC):
        raise HTTPException(status_code=400, detail="Link expired")

    content = await storage.download(link.file.storage_key)
    return Response(content=content, media_type="application/octet-stream")
