"""add item tag associations

Revision ID: 0002_add_item_tags
Revises: 0001_initial
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002_add_item_tags"
down_revision: str | None = "0001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "catalog_item_tags",
        sa.Column(
            "item_id",
            sa.String(length=64),
            sa.ForeignKey("catalog_items.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("tag_id", sa.String(length=64), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_catalog_item_tags_tag_id", "catalog_item_tags", ["tag_id"])


def downgrade() -> None:
    op.drop_index("ix_catalog_item_tags_tag_id", table_name="catalog_item_tags")
    op.drop_table("catalog_item_tags")
