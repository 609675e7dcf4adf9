"""sites, content_items and page_blocks

Revision ID: 5b1e0c9a7d21
Revises:
Create Date: 2026-10-19 10:02:11.418532

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1e0c9a7d21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

SITE_STATUSES = ("draft", "active", "inactive", "suspended")
CONTENT_TYPES = ("page", "post", "product", "event", "directory")


def upgrade() -> None:
    op.create_table(
        "sites",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("subdomain", sa.String(63), nullable=False),
        sa.Column("custom_domain", sa.String(255), nullable=True),
        sa.Column("status", sa.Enum(*SITE_STATUSES, name="site_status", native_enum=False), nullable=False),
        sa.Column("settings", JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_sites"),
        sa.UniqueConstraint("subdomain", name="uq_sites_subdomain"),
        sa.UniqueConstraint("custom_domain", name="uq_sites_custom_domain"),
    )
    op.create_index("ix_sites_owner_id", "sites", ["owner_id"], unique=False)

    op.create_table(
        "content_items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("site_id", sa.String(36), nullable=False),
        sa.Column("content_type", sa.Enum(*CONTENT_TYPES, name="content_type", native_enum=False), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("meta_description", sa.String(500), nullable=True),
        sa.Column("meta_keywords", sa.String(500), nullable=True),
        sa.Column("featured_image", sa.String(1024), nullable=True),
        sa.Column("is_homepage", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("content_blocks", JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["site_id"], ["sites.id"], name="fk_content_items_site_id_sites", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_content_items"),
        sa.UniqueConstraint("site_id", "content_type", "slug", name="uq_content_item_slug_per_type"),
    )
    op.create_index("ix_content_items_site_id", "content_items", ["site_id"], unique=False)
    op.create_index(
        "ix_content_items_site_type_order",
        "content_items",
        ["site_id", "content_type", "display_order"],
        unique=False,
    )

    op.create_table(
        "page_blocks",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("site_id", sa.String(36), nullable=False),
        sa.Column("block_type", sa.String(64), nullable=False),
        sa.Column("page_slug", sa.String(100), nullable=False, server_default="global"),
        sa.Column("content", JSON, nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["site_id"], ["sites.id"], name="fk_page_blocks_site_id_sites", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_page_blocks"),
    )
    op.create_index("ix_page_blocks_site_id", "page_blocks", ["site_id"], unique=False)
    op.create_index(
        "ix_page_blocks_site_page_order",
        "page_blocks",
        ["site_id", "page_slug", "display_order"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_page_blocks_site_page_order", table_name="page_blocks")
    op.drop_index("ix_page_blocks_site_id", table_name="page_blocks")
    op.drop_table("page_blocks")
    op.drop_index("ix_content_items_site_type_order", table_name="content_items")
    op.drop_index("ix_content_items_site_id", table_name="content_items")
    op.drop_table("content_items")
    op.drop_index("ix_sites_owner_id", table_name="sites")
    op.drop_table("sites")
