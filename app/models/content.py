# app/models/content.py
# Content items (pages, posts, products, events, directories) and site-level block rows
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String, Integer, Text, Boolean, ForeignKey, DateTime, Enum as SQLEnum,
    UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.models.site import new_uuid


class ContentType(str, Enum):
    page = "page"
    post = "post"
    product = "product"
    event = "event"
    directory = "directory"


# Only these types carry the is_private flag
PRIVACY_TYPES = (ContentType.event.value, ContentType.directory.value)

# Page-slug tag for blocks shared by every page of a site
GLOBAL_PAGE_SLUG = "global"


class ContentItem(Base):
    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), index=True)
    content_type: Mapped[str] = mapped_column(
        SQLEnum(*[t.value for t in ContentType], name="content_type", native_enum=False)
    )

    title: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    meta_keywords: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    featured_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    is_homepage: Mapped[bool] = mapped_column(Boolean, default=False)  # pages only
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)  # events/directories only
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    # block-id -> {"type", "content", "display_order"}
    content_blocks: Mapped[dict] = mapped_column(JSONType, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    site: Mapped["Site"] = relationship("Site", back_populates="content_items")

    __table_args__ = (
        UniqueConstraint("site_id", "content_type", "slug", name="uq_content_item_slug_per_type"),
        Index("ix_content_items_site_type_order", "site_id", "content_type", "display_order"),
    )


class PageBlock(Base):
    __tablename__ = "page_blocks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    site_id: Mapped[str] = mapped_column(ForeignKey("sites.id", ondelete="CASCADE"), index=True)

    block_type: Mapped[str] = mapped_column(String(64))
    # a page slug, or GLOBAL_PAGE_SLUG for site-wide blocks
    page_slug: Mapped[str] = mapped_column(String(100), default=GLOBAL_PAGE_SLUG)
    content: Mapped[dict] = mapped_column(JSONType, default=dict)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    site: Mapped["Site"] = relationship("Site", back_populates="page_blocks")

    __table_args__ = (
        Index("ix_page_blocks_site_page_order", "site_id", "page_slug", "display_order"),
    )
