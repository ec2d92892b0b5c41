"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "catalog_items",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost", sa.Integer(), nullable=True),
        sa.Column("sku", sa.String(length=128), nullable=True, unique=True),
        sa.Column("code", sa.String(length=128), nullable=True),
        sa.Column("stock_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("category_name", sa.String(length=256), nullable=True),
        sa.Column("modified_time", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("last_synced", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_catalog_items_name", "catalog_items", ["name"])
    op.create_index("ix_catalog_items_code", "catalog_items", ["code"])
    op.create_index("ix_catalog_items_stock_count", "catalog_items", ["stock_count"])
    op.create_index("ix_catalog_items_available", "catalog_items", ["available"])
    op.create_index("ix_catalog_items_category_id", "catalog_items", ["category_id"])

    op.create_table(
        "sync_runs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="in_progress"),
        sa.Column("items_fetched", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("items_deleted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_sync_runs_status", "sync_runs", ["status"])


def downgrade() -> None:
    op.drop_index("ix_sync_runs_status", table_name="sync_runs")
    op.drop_table("sync_runs")

    op.drop_index("ix_catalog_items_category_id", table_name="catalog_items")
    op.drop_index("ix_catalog_items_available", table_name="catalog_items")
    op.drop_index("ix_catalog_items_stock_count", table_name="catalog_items")
    op.drop_index("ix_catalog_items_code", table_name="catalog_items")
    op.drop_index("ix_catalog_items_name", table_name="catalog_items")
    op.drop_table("catalog_items")
