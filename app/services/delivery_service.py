# app/services/delivery_service.py
# Public read side: resolves a site by host and assembles the block sequence for a page.
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from app.errors import InvalidInput, NotFound
from app.models.content import ContentItem, ContentType, PageBlock, GLOBAL_PAGE_SLUG
from app.models.site import Site, SERVABLE_STATUSES
from app.services.composer import block_to_dict, block_type_of, compose_blocks
from app.services.content_service import blocks_as_list, normalize_content_type
from app.services.listing_service import prefetch_listing_data, listing_item
from app.services.slug_service import SLUG_RE

log = logging.getLogger(__name__)

DEFAULT_PAGE_SLUG = "home"
SYNTHETIC_NAVIGATION_ID = "site-navigation"
SYNTHETIC_FOOTER_ID = "site-footer"

# settings keys the renderer needs; the rest of the bag stays private
PUBLIC_SETTINGS_KEYS = ("theme", "fonts", "tracking", "animation", "navigation", "footer", "homepage_slug")


# -----------------------------
# Site lookup
# -----------------------------
def get_site_for_host(db: Session, *, subdomain: Optional[str] = None, domain: Optional[str] = None) -> Site:
    if subdomain:
        site = db.scalar(select(Site).where(Site.subdomain == subdomain.strip().lower()))
    elif domain:
        site = db.scalar(select(Site).where(Site.custom_domain == domain.strip().lower()))
    else:
        raise InvalidInput("Subdomain or domain is required")

    if site is None:
        raise NotFound("Site not found")
    if site.status not in SERVABLE_STATUSES:
        raise NotFound("Site is not available for viewing")
    return site


def subdomain_exists(db: Session, subdomain: str) -> Dict[str, bool]:
    status = db.scalar(select(Site.status).where(Site.subdomain == (subdomain or "").strip().lower()))
    if status is None:
        return {"exists": False, "is_active": False}
    return {"exists": True, "is_active": status == "active"}


def public_site(site: Site) -> Dict[str, Any]:
    bag = site.settings or {}
    return {
        "id": site.id,
        "name": site.name,
        "subdomain": site.subdomain,
        "custom_domain": site.custom_domain,
        "status": site.status,
        "settings": {k: bag[k] for k in PUBLIC_SETTINGS_KEYS if k in bag},
    }


# -----------------------------
# Pages
# -----------------------------
def _homepage(db: Session, site: Site) -> Optional[ContentItem]:
    return db.scalar(
        select(ContentItem).where(
            and_(
                ContentItem.site_id == site.id,
                ContentItem.content_type == ContentType.page.value,
                ContentItem.is_homepage.is_(True),
            )
        )
    )


def _page_item(db: Session, site: Site, slug: str) -> Optional[ContentItem]:
    return db.scalar(
        select(ContentItem).where(
            and_(
                ContentItem.site_id == site.id,
                ContentItem.content_type == ContentType.page.value,
                ContentItem.slug == slug,
            )
        )
    )


def _active_rows(db: Session, site_id: str, page_slug: str) -> List[PageBlock]:
    stmt = (
        select(PageBlock)
        .where(
            and_(
                PageBlock.site_id == site_id,
                PageBlock.page_slug == page_slug,
                PageBlock.is_active.is_(True),
            )
        )
        .order_by(PageBlock.display_order.asc())
    )
    return list(db.scalars(stmt).all())


def global_blocks_for(db: Session, site: Site) -> List[Any]:
    """
    Stored global rows; when the site has no stored navigation/footer the
    settings bag versions are synthesized so every page stays bracketed.
    """
    blocks: List[Any] = list(_active_rows(db, site.id, GLOBAL_PAGE_SLUG))
    types = {block_type_of(b) for b in blocks}
    bag = site.settings or {}
    if "navigation" not in types and isinstance(bag.get("navigation"), dict):
        blocks.append(
            {"id": SYNTHETIC_NAVIGATION_ID, "type": "navigation", "content": bag["navigation"], "display_order": -1}
        )
    if "footer" not in types and isinstance(bag.get("footer"), dict):
        blocks.append(
            {"id": SYNTHETIC_FOOTER_ID, "type": "footer", "content": bag["footer"], "display_order": 999}
        )
    return blocks


def newest_block_update(blocks: List[Any]) -> Optional[datetime]:
    """Latest updated_at among stored PageBlock rows; synthesized blocks carry none."""
    stamps = [b.updated_at for b in blocks if isinstance(b, PageBlock) and b.updated_at is not None]
    return max(stamps, key=lambda d: d.replace(tzinfo=None)) if stamps else None


def resolve_page_slug(db: Session, site: Site, page_slug: Optional[str]) -> str:
    if page_slug:
        if not SLUG_RE.match(page_slug):
            raise NotFound("Page not found")
        return page_slug
    home = _homepage(db, site)
    if home is not None:
        return home.slug
    return (site.settings or {}).get("homepage_slug") or DEFAULT_PAGE_SLUG


def render_page(db: Session, site: Site, page_slug: Optional[str] = None) -> Dict[str, Any]:
    """
    {site, page, blocks, listingData} for the frontend renderer. Draft pages
    are hidden unless they are the homepage.
    """
    slug = resolve_page_slug(db, site, page_slug)
    item = _page_item(db, site, slug)
    is_home = page_slug is None or (item is not None and item.is_homepage)

    page_rows = _active_rows(db, site.id, slug) if slug != GLOBAL_PAGE_SLUG else []
    if item is not None and not item.is_published and not item.is_homepage:
        raise NotFound("Page not found")
    if item is None and not page_rows and not is_home:
        raise NotFound("Page not found")

    page_blocks: List[Any] = list(page_rows)
    if item is not None:
        page_blocks.extend(blocks_as_list(item))

    global_blocks = global_blocks_for(db, site)
    composed = [block_to_dict(b) for b in compose_blocks(global_blocks, page_blocks)]
    listing_data = prefetch_listing_data(db, site_id=site.id, blocks=composed)

    page = None
    if item is not None:
        page = {
            "id": item.id,
            "title": item.title,
            "slug": item.slug,
            "is_homepage": item.is_homepage,
            "meta_description": item.meta_description,
            "meta_keywords": item.meta_keywords,
            "featured_image": item.featured_image,
            "updated_at": item.updated_at,
        }
    return {
        "site": public_site(site),
        "page": page,
        "pageSlug": slug,
        "blocks": composed,
        "listingData": listing_data,
        "updated_at": newest_block_update(global_blocks + page_rows),
    }


def list_published_pages(db: Session, site: Site) -> List[Dict[str, Any]]:
    stmt = (
        select(ContentItem)
        .where(
            and_(
                ContentItem.site_id == site.id,
                ContentItem.content_type == ContentType.page.value,
                ContentItem.is_published.is_(True),
            )
        )
        .order_by(ContentItem.display_order.asc(), ContentItem.created_at.desc())
    )
    return [
        {"id": p.id, "title": p.title, "slug": p.slug, "is_homepage": p.is_homepage}
        for p in db.scalars(stmt).all()
    ]


def get_published_item(db: Session, site: Site, content_type: str, slug: str) -> Dict[str, Any]:
    """Detail view of a published, non-private post/product/event/directory."""
    ctype = normalize_content_type(content_type)
    item = db.scalar(
        select(ContentItem).where(
            and_(
                ContentItem.site_id == site.id,
                ContentItem.content_type == ctype,
                ContentItem.slug == slug,
                ContentItem.is_published.is_(True),
                ContentItem.is_private.is_(False),
            )
        )
    )
    if item is None:
        raise NotFound(f"{ctype.capitalize()} not found")

    global_blocks = global_blocks_for(db, site)
    composed = [block_to_dict(b) for b in compose_blocks(global_blocks, blocks_as_list(item))]
    data = listing_item(item)
    data["meta_description"] = item.meta_description
    data["updated_at"] = item.updated_at
    return {
        "site": public_site(site),
        "item": data,
        "blocks": composed,
        "listingData": prefetch_listing_data(db, site_id=site.id, blocks=composed),
        "updated_at": newest_block_update(global_blocks),
    }
