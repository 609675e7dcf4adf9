# app/services/slug_service.py
# Slug derivation, validation and collision checks for content items and sites
from __future__ import annotations

import re
from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.errors import InvalidInput
from app.models.content import ContentItem, ContentType
from app.models.site import Site

SLUG_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
SUBDOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

# Priority order used when reporting a cross-type collision
CONFLICT_SCAN_ORDER = (
    ContentType.page.value,
    ContentType.post.value,
    ContentType.product.value,
    ContentType.event.value,
    ContentType.directory.value,
)


@dataclass
class SlugConflict:
    has_conflict: bool
    conflict_type: Optional[str] = None
    conflict_title: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


# -----------------------------
# Derivation / validation
# -----------------------------
def slugify(title: str) -> str:
    """
    "Hello, World!" -> "hello-world". Idempotent: slugify(slugify(x)) == slugify(x).
    """
    s = (title or "").lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    s = re.sub(r"\s+", "-", s)
    s = re.sub(r"-+", "-", s)
    s = s.strip("-")
    return s[: settings.MAX_SLUG_LENGTH].strip("-")


def validate_slug(slug: str) -> str:
    if not slug:
        raise InvalidInput("Slug is required")
    if len(slug) > settings.MAX_SLUG_LENGTH:
        raise InvalidInput(f"Slug must be at most {settings.MAX_SLUG_LENGTH} characters")
    if not SLUG_RE.match(slug):
        raise InvalidInput("Slug can only contain letters, numbers, hyphens, and underscores")
    if slug.lower() in settings.RESERVED_SLUGS:
        raise InvalidInput(f"'{slug}' is a reserved slug")
    return slug


def validate_page_slug(page_slug: str, *, allow_global: bool = True) -> str:
    """Page association of a block: a page slug or the 'global' tag."""
    if allow_global and page_slug == "global":
        return page_slug
    if not page_slug or not SLUG_RE.match(page_slug):
        raise InvalidInput("Invalid page slug format")
    return page_slug


# -----------------------------
# Lookups
# -----------------------------
def slug_exists(
    db: Session,
    *,
    site_id: str,
    content_type: str,
    slug: str,
    excluding_id: Optional[str] = None,
) -> bool:
    conds = [
        ContentItem.site_id == site_id,
        ContentItem.content_type == content_type,
        ContentItem.slug == slug,
    ]
    if excluding_id:
        conds.append(ContentItem.id != excluding_id)
    return db.scalar(select(ContentItem.id).where(and_(*conds)).limit(1)) is not None


def next_free_slug(db: Session, *, site_id: str, content_type: str, base: str) -> str:
    """base, base-1, base-2, ... : first one not taken within (site, type)."""
    candidate = base
    counter = 1
    while slug_exists(db, site_id=site_id, content_type=content_type, slug=candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def check_conflict(
    db: Session,
    *,
    site_id: str,
    slug: str,
    excluding_id: Optional[str] = None,
) -> SlugConflict:
    """
    Informational only: reports the first item of any type using `slug`.
    Same-type uniqueness is enforced separately by the content store.
    """
    for content_type in CONFLICT_SCAN_ORDER:
        conds = [
            ContentItem.site_id == site_id,
            ContentItem.content_type == content_type,
            ContentItem.slug == slug,
        ]
        if excluding_id:
            conds.append(ContentItem.id != excluding_id)
        title = db.scalar(select(ContentItem.title).where(and_(*conds)).limit(1))
        if title is not None:
            return SlugConflict(True, content_type, title)
    return SlugConflict(False)


# -----------------------------
# Subdomains
# -----------------------------
def derive_subdomain(name: str) -> str:
    s = re.sub(r"[^a-z0-9]", "-", (name or "").lower())
    s = re.sub(r"-+", "-", s).strip("-")
    return s[:63].strip("-")


def is_valid_subdomain(subdomain: str) -> bool:
    return bool(subdomain) and bool(SUBDOMAIN_RE.match(subdomain)) and subdomain not in settings.RESERVED_SLUGS


def subdomain_taken(db: Session, subdomain: str) -> bool:
    return db.scalar(select(Site.id).where(Site.subdomain == subdomain).limit(1)) is not None


def check_subdomain_availability(db: Session, subdomain: str) -> dict:
    subdomain = (subdomain or "").strip().lower()
    if not is_valid_subdomain(subdomain):
        return {"available": False, "error": "Invalid subdomain format", "suggestions": []}
    if not subdomain_taken(db, subdomain):
        return {"available": True, "suggestions": []}
    suggestions = [
        f"{subdomain}-{i}" for i in range(1, 6) if not subdomain_taken(db, f"{subdomain}-{i}")
    ]
    return {"available": False, "suggestions": suggestions}
