# app/schemas/content.py
# Pydantic requests/responses for content items and their sub-blocks
from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ConfigDict


# ---------- ContentItem ----------
class ContentItemBase(BaseModel):
    title: str = Field(..., max_length=255)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    meta_description: Optional[str] = Field(None, max_length=500)
    meta_keywords: Optional[str] = Field(None, max_length=500)
    featured_image: Optional[str] = Field(None, max_length=1024)


class ContentItemCreate(ContentItemBase):
    is_published: bool = False
    is_homepage: bool = False
    is_private: bool = False
    content_blocks: Optional[Dict[str, Any]] = None


class ContentItemUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    slug: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    meta_description: Optional[str] = Field(None, max_length=500)
    meta_keywords: Optional[str] = Field(None, max_length=500)
    featured_image: Optional[str] = Field(None, max_length=1024)
    is_published: Optional[bool] = None
    is_homepage: Optional[bool] = None
    is_private: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)
    content_blocks: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class ContentItemDuplicate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)


class ContentItemOut(ContentItemBase):
    model_config = ConfigDict(from_attributes=True)
    id: str
    site_id: str
    content_type: str
    slug: str
    is_published: bool
    is_homepage: bool
    is_private: bool
    display_order: int
    content_blocks: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- Sub-blocks (content_blocks entries) ----------
class SubBlockCreate(BaseModel):
    type: str = Field(..., max_length=64)
    content: Optional[Dict[str, Any]] = None


class SubBlockUpdate(BaseModel):
    content: Dict[str, Any]


class SubBlockOut(BaseModel):
    id: str
    type: str
    title: str
    content: Dict[str, Any]
    display_order: int


class SubBlocksReplace(BaseModel):
    content_blocks: Dict[str, Any]


# ---------- Slug conflicts ----------
class SlugConflictOut(BaseModel):
    has_conflict: bool
    conflict_type: Optional[str] = None
    conflict_title: Optional[str] = None


class ContentItemListOut(BaseModel):
    items: List[ContentItemOut]
    total: int
