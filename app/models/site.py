# app/models/site.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType


class SiteStatus(str, Enum):
    draft = "draft"
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


# Statuses the public renderer will serve
SERVABLE_STATUSES = (SiteStatus.active.value, SiteStatus.draft.value)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Site(Base):
    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    # identity of the owning principal, issued by the external auth provider
    owner_id: Mapped[str] = mapped_column(String(64), index=True)

    name: Mapped[str] = mapped_column(String(200))
    subdomain: Mapped[str] = mapped_column(String(63), unique=True)
    custom_domain: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    status: Mapped[str] = mapped_column(
        SQLEnum(*[s.value for s in SiteStatus], name="site_status", native_enum=False),
        default=SiteStatus.draft.value,
    )
    # navigation, footer, theme, fonts, tracking, animation, homepage_slug, ...
    settings: Mapped[dict] = mapped_column(JSONType, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    content_items: Mapped[list["ContentItem"]] = relationship(
        "ContentItem", back_populates="site", cascade="all, delete-orphan", passive_deletes=True
    )
    page_blocks: Mapped[list["PageBlock"]] = relationship(
        "PageBlock", back_populates="site", cascade="all, delete-orphan", passive_deletes=True
    )
