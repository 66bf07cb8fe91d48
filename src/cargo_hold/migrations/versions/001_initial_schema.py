"""Initial schema: tenants, purposes, files, file_links.

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("oid", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("total_files_bytes", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("file_count", sa.BigInteger, nullable=False, server_default="0"),
    )

    op.create_table(
        "purposes",
        sa.Column("oid", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
    )

    op.create_table(
        "files",
        sa.Column("oid", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("tenant_oid", sa.BigInteger, sa.ForeignKey("tenants.oid"), nullable=False),
        sa.Column("filename", sa.Text, nullable=False),
        sa.Column("purpose_oid", sa.BigInteger, sa.ForeignKey("purposes.oid"), nullable=False),
        sa.Column("bytes", sa.BigInteger, nullable=False),
        sa.Column("storage_key", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_files_tenant_oid", "files", ["tenant_oid"])

    op.create_table(
        "file_links",
        sa.Column("oid", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column(
            "file_oid",
            sa.BigInteger,
            sa.ForeignKey("files.oid", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(255), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("file_links")
    op.drop_index("ix_files_tenant_oid", table_name="files")
    op.drop_table("files")
    op.drop_table("purposes")
    op.drop_table("tenants")
