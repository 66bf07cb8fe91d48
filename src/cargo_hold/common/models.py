"""SQLAlchemy ORM models and Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ── SQLAlchemy ORM ──────────────────────────────────────────────────────
#
# Every table is keyed by ``oid``, a snowflake id used for ordering and joins,
# and carries ``id``, the prefixed external id that is exposed over HTTP.


class Base(DeclarativeBase):
    pass


class Tenant(Base):
    __tablename__ = "tenants"

    oid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    total_files_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    file_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")


class Purpose(Base):
    __tablename__ = "purposes"

    oid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class StoredFile(Base):
    __tablename__ = "files"

    oid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    tenant_oid: Mapped[int] = mapped_column(BigInteger, ForeignKey("tenants.oid"), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    purpose_oid: Mapped[int] = mapped_column(BigInteger, ForeignKey("purposes.oid"), nullable=False)
    bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_key: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tenant: Mapped[Tenant] = relationship(lazy="raise")
    purpose: Mapped[Purpose] = relationship(lazy="raise")


class FileLink(Base):
    __tablename__ = "file_links"

    oid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    file_oid: Mapped[int] = mapped_column(BigInteger, ForeignKey("files.oid", ondelete="CASCADE"), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    file: Mapped[StoredFile] = relationship(lazy="raise")


# ── Pydantic Schemas ────────────────────────────────────────────────────


def _unix(value: datetime | None) -> int:
    return int(value.timestamp()) if value else 0


class FileResponse(BaseModel):
    id: str
    object: str = "file"
    bytes: int
    created_at: int
    updated_at: int
    filename: str
    purpose: str
    tenant_id: str | None = None

    @classmethod
    def from_file(cls, file: StoredFile, purpose: str, tenant_id: str | None = None) -> "FileResponse":
        return cls(
            id=file.id,
            bytes=file.bytes,
            created_at=_unix(file.created_at),
            updated_at=_unix(file.updated_at),
            filename=file.filename,
            purpose=purpose,
            tenant_id=tenant_id,
        )


class FileLinkResponse(BaseModel):
    id: str
    object: str = "file_link"
    file_id: str
    key: str
    expires_at: int
    created_at: int

    @classmethod
    def from_link(cls, link: FileLink, file_id: str) -> "FileLinkResponse":
        return cls(
            id=link.id,
            file_id=file_id,
            key=link.key,
            expires_at=_unix(link.expires_at),
            created_at=_unix(link.created_at),
        )


class PaginationResponse(BaseModel):
    has_more_before: bool = False
    has_more_after: bool = False


class ListFilesResponse(BaseModel):
    items: list[FileResponse]
    pagination: PaginationResponse


# Keeps now + expires_in well inside datetime range.
MAX_LINK_LIFETIME_SECONDS = 100 * 365 * 24 * 60 * 60


class CreateLinkRequest(BaseModel):
    file_id: str
    expires_in: int = Field(gt=0, le=MAX_LINK_LIFETIME_SECONDS, description="Lifetime of the link in seconds")
    key: str | None = Field(default=None, min_length=1, max_length=255)


class UpdateFileRequest(BaseModel):
    filename: str | None = Field(default=None, min_length=1)
    purpose: str | None = None
