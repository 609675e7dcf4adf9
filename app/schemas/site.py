# app/schemas/site.py
from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field, ConfigDict

SiteStatusLiteral = Literal["draft", "active", "inactive", "suspended"]


class SiteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    subdomain: Optional[str] = Field(None, max_length=63)
    custom_domain: Optional[str] = Field(None, max_length=255)
    settings: Optional[Dict[str, Any]] = None


class SiteUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[SiteStatusLiteral] = None
    custom_domain: Optional[str] = Field(None, max_length=255)
    # shallow-merged into the stored settings bag
    settings: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class SiteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    owner_id: str
    name: str
    subdomain: str
    custom_domain: Optional[str] = None
    status: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubdomainAvailabilityOut(BaseModel):
    available: bool
    suggestions: List[str] = Field(default_factory=list)
    error: Optional[str] = None
