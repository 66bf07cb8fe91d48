"""PostgreSQL storage for tenants, purposes, files, and file links."""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cargo_hold.api.pagination import SortOrder
from cargo_hold.common.models import FileLink, Purpose, StoredFile, Tenant
from cargo_hold.identity import LINK_KEY_LENGTH, SnowflakeGenerator, generate_prefixed_id, random_suffix

logger = structlog.get_logger()


def _file_query():
    return select(StoredFile).options(selectinload(StoredFile.tenant), selectinload(StoredFile.purpose))


def _link_query():
    return select(FileLink).options(selectinload(FileLink.file))


class FileStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    # ── Tenants and purposes ────────────────────────────────────────────

    async def get_or_create_tenant(self, name: str, generator: SnowflakeGenerator) -> Tenant:
        """Return the tenant registered under ``name``, creating it on first use."""
        existing = await self.get_tenant_by_name(name)
        if existing is not None:
            return existing

        oid = generator.generate()
        stmt = (
            insert(Tenant)
            .values(oid=oid, id=generate_prefixed_id("tenant", oid), name=name)
            .on_conflict_do_nothing(index_elements=[Tenant.name])
        )
        await self.session.execute(stmt)
        await self.session.flush()

        # A concurrent request may have won the insert; re-read either way.
        tenant = await self.get_tenant_by_name(name)
        if tenant is None:
            raise RuntimeError(f"Tenant {name!r} vanished after insert")
        logger.info("tenant_resolved", tenant_id=tenant.id, name=name, created=tenant.oid == oid)
        return tenant

    async def get_tenant_by_name(self, name: str) -> Tenant | None:
        result = await self.session.execute(select(Tenant).where(Tenant.name == name))
        return result.scalar_one_or_none()

    async def get_tenant_by_id(self, tenant_id: str) -> Tenant | None:
        result = await self.session.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    async def get_purpose_by_slug(self, slug: str) -> Purpose | None:
        result = await self.session.execute(select(Purpose).where(Purpose.slug == slug))
        return result.scalar_one_or_none()

    async def upsert_purposes(self, slugs: Sequence[str], generator: SnowflakeGenerator) -> int:
        """Insert any purpose slugs that do not exist yet. Returns the number inserted."""
        inserted = 0
        for slug in slugs:
            oid = generator.generate()
            stmt = (
                insert(Purpose)
                .values(oid=oid, id=generate_prefixed_id("purpose", oid), slug=slug)
                .on_conflict_do_nothing(index_elements=[Purpose.slug])
            )
            result = await self.session.execute(stmt)
            inserted += result.rowcount or 0
        await self.session.flush()
        logger.info("purposes_upserted", requested=len(slugs), inserted=inserted)
        return inserted

    # ── Files ───────────────────────────────────────────────────────────

    async def create_file(
        self,
        oid: int,
        file_id: str,
        tenant: Tenant,
        purpose: Purpose,
        filename: str,
        size: int,
        storage_key: str,
    ) -> StoredFile:
        """Insert a file row and bump the owning tenant's counters."""
        file = StoredFile(
            oid=oid,
            id=file_id,
            tenant_oid=tenant.oid,
            filename=filename,
            purpose_oid=purpose.oid,
            bytes=size,
            storage_key=storage_key,
        )
        self.session.add(file)
        await self.session.flush()
        await self._adjust_tenant_usage(tenant.oid, size, 1)
        return await self._reload_file(file.oid)

    async def get_file(self, file_id: str, tenant_oid: int | None = None) -> StoredFile | None:
        stmt = _file_query().where(StoredFile.id == file_id)
        if tenant_oid is not None:
            stmt = stmt.where(StoredFile.tenant_oid == tenant_oid)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_file(
        self,
        file: StoredFile,
        filename: str | None = None,
        purpose: Purpose | None = None,
    ) -> StoredFile:
        values: dict = {"updated_at": func.now()}
        if filename is not None:
            values["filename"] = filename
        if purpose is not None:
            values["purpose_oid"] = purpose.oid
        await self.session.execute(update(StoredFile).where(StoredFile.oid == file.oid).values(**values))
        await self.session.flush()
        return await self._reload_file(file.oid)

    async def delete_file(self, file: StoredFile) -> None:
        """Delete the file row (links cascade) and release the tenant's usage."""
        await self.session.execute(delete(StoredFile).where(StoredFile.oid == file.oid))
        await self._adjust_tenant_usage(file.tenant_oid, -file.bytes, -1)
        await self.session.flush()

    async def _adjust_tenant_usage(self, tenant_oid: int, size_delta: int, count_delta: int) -> None:
        await self.session.execute(
            update(Tenant)
            .where(Tenant.oid == tenant_oid)
            .values(
                total_files_bytes=Tenant.total_files_bytes + size_delta,
                file_count=Tenant.file_count + count_delta,
                updated_at=func.now(),
            )
        )

    async def _reload_file(self, oid: int) -> StoredFile:
        result = await self.session.execute(
            _file_query().where(StoredFile.oid == oid).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ── Keyset pagination collaborators ─────────────────────────────────

    async def find_file_key(self, file_id: str) -> int | None:
        result = await self.session.execute(select(StoredFile.oid).where(StoredFile.id == file_id))
        return result.scalar_one_or_none()

    async def list_files(
        self,
        tenant_oid: int | None,
        lower: int | None,
        upper: int | None,
        order: SortOrder,
        limit: int,
    ) -> list[StoredFile]:
        """Files with ``lower < oid < upper`` ordered by oid."""
        stmt = _file_query()
        if tenant_oid is not None:
            stmt = stmt.where(StoredFile.tenant_oid == tenant_oid)
        if lower is not None:
            stmt = stmt.where(StoredFile.oid > lower)
        if upper is not None:
            stmt = stmt.where(StoredFile.oid < upper)
        sort = StoredFile.oid.asc() if order is SortOrder.ASC else StoredFile.oid.desc()
        result = await self.session.execute(stmt.order_by(sort).limit(limit))
        return list(result.scalars().all())

    # ── Links ───────────────────────────────────────────────────────────

    async def create_link(
        self,
        file: StoredFile,
        generator: SnowflakeGenerator,
        expires_in: int,
        key: str | None = None,
    ) -> FileLink:
        oid = generator.generate()
        link = FileLink(
            oid=oid,
            id=generate_prefixed_id("link", oid),
            file_oid=file.oid,
            key=key or random_suffix(LINK_KEY_LENGTH),
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        )
        self.session.add(link)
        await self.session.flush()
        result = await self.session.execute(
            _link_query().where(FileLink.oid == oid).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_link(self, link_id: str) -> FileLink | None:
        result = await self.session.execute(_link_query().where(FileLink.id == link_id))
        return result.scalar_one_or_none()

    async def get_link_by_key(self, key: str) -> FileLink | None:
        result = await self.session.execute(_link_query().where(FileLink.key == key))
        return result.scalar_one_or_none()

    async def delete_link(self, link: FileLink) -> None:
        await self.session.execute(delete(FileLink).where(FileLink.oid == link.oid))
        await self.session.flush()


class FileKeysetSource:
    """Adapts :class:`FileStore` to the paginator's ``KeysetSource`` protocol."""

    def __init__(self, store: FileStore) -> None:
        self.store = store

    async def find_key(self, external_id: str) -> int | None:
        return await self.store.find_file_key(external_id)

    async def fetch_range(
        self,
        scope: int | None,
        lower: int | None,
        upper: int | None,
        order: SortOrder,
        limit: int,
    ) -> list[StoredFile]:
        return await self.store.list_files(scope, lower, upper, order, limit)
