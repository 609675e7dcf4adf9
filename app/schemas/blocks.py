# app/schemas/blocks.py
from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ConfigDict


class PageBlockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    site_id: str
    block_type: str
    page_slug: str
    content: Dict[str, Any] = Field(default_factory=dict)
    display_order: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BlockAdd(BaseModel):
    block_type: str = Field(..., max_length=64)


class BlockReorder(BaseModel):
    block_ids: List[str] = Field(default_factory=list)


class BlockContentUpdate(BaseModel):
    content: Dict[str, Any]


class BlockActiveUpdate(BaseModel):
    is_active: bool


class ComposedBlockOut(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = None
    title: str
    content: Dict[str, Any] = Field(default_factory=dict)
    display_order: int
    page_slug: Optional[str] = None


class BlockTypeOut(BaseModel):
    type: str
    title: str
    protected: bool
    protection_reason: Optional[str] = None
    user_addable: bool
    default_content: Dict[str, Any] = Field(default_factory=dict)
