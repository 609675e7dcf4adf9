# app/services/listing_service.py
# Data behind "listing-views" blocks: paged lists of published items, prefetched at render time.
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select, and_, func
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.errors import InvalidInput
from app.models.content import ContentItem
from app.services.composer import block_type_of
from app.services.content_service import normalize_content_type

log = logging.getLogger(__name__)

LISTING_BLOCK_TYPE = "listing-views"

LISTING_DEFAULTS: Dict[str, Any] = {
    "contentType": "products",
    "sortBy": "date",
    "sortOrder": "desc",
    "itemsToShow": 6,
    "itemsPerPage": 12,
    "isPaginated": False,
}

_SORT_COLUMNS = {
    "date": ContentItem.created_at,
    "title": ContentItem.title,
    "display_order": ContentItem.display_order,
}


def _sub_block_content(item: ContentItem, block_type: str) -> Dict[str, Any]:
    for block_id, block in (item.content_blocks or {}).items():
        if not isinstance(block, dict):
            continue
        if (block.get("type") or block_id) == block_type:
            content = block.get("content")
            return content if isinstance(content, dict) else {}
    return {}


def listing_item(item: ContentItem) -> Dict[str, Any]:
    product_default = _sub_block_content(item, "product-default")
    return {
        "id": item.id,
        "title": item.title,
        "slug": item.slug,
        "content_type": item.content_type,
        "featured_image": item.featured_image or product_default.get("featuredImage") or None,
        "richText": product_default.get("richText") or None,
        "description": item.description,
        "display_order": item.display_order,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


def get_listing_data(
    db: Session,
    *,
    site_id: str,
    content_type: str = "products",
    sort_by: str = "date",
    sort_order: str = "desc",
    limit: int = 6,
    offset: int = 0,
) -> Dict[str, Any]:
    """Published, non-private items only."""
    if not site_id:
        raise InvalidInput("Site ID is required")
    ctype = normalize_content_type(content_type)
    if sort_by not in _SORT_COLUMNS:
        raise InvalidInput(f"Unsupported sortBy: {sort_by}")
    if sort_order not in ("asc", "desc"):
        raise InvalidInput(f"Unsupported sortOrder: {sort_order}")

    limit = max(1, min(int(limit or 1), settings.LISTING_MAX_LIMIT))
    offset = max(0, int(offset or 0))

    where = and_(
        ContentItem.site_id == site_id,
        ContentItem.content_type == ctype,
        ContentItem.is_published.is_(True),
        ContentItem.is_private.is_(False),
    )
    total = db.scalar(select(func.count()).select_from(ContentItem).where(where)) or 0

    column = _SORT_COLUMNS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()
    stmt = select(ContentItem).where(where).order_by(ordering, ContentItem.id).offset(offset).limit(limit)
    items = db.scalars(stmt).all()

    return {
        "contentType": content_type,
        "items": [listing_item(it) for it in items],
        "totalCount": total,
        "currentPage": offset // limit + 1,
        "totalPages": math.ceil(total / limit),
    }


def resolve_listing_config(content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Block content merged over defaults, plus the limit/offset for the first page."""
    cfg = dict(LISTING_DEFAULTS)
    for key, value in (content or {}).items():
        if key in LISTING_DEFAULTS and value is not None:
            cfg[key] = value
    cfg["limit"] = cfg["itemsPerPage"] if cfg["isPaginated"] else cfg["itemsToShow"]
    cfg["offset"] = 0
    return cfg


def prefetch_listing_data(db: Session, *, site_id: str, blocks: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """
    {block_id: listing data} for every listing-views block. Failures are logged
    and the block is left out; the renderer falls back to client-side loading.
    """
    out: Dict[str, Dict[str, Any]] = {}
    for block in blocks:
        if block_type_of(block) != LISTING_BLOCK_TYPE:
            continue
        if isinstance(block, dict):
            block_id, content = block.get("id"), block.get("content")
        else:
            block_id, content = block.id, block.content
        try:
            cfg = resolve_listing_config(content)
            # savepoint: a failed query must not abort the rest of the render
            with db.begin_nested():
                out[str(block_id)] = get_listing_data(
                    db,
                    site_id=site_id,
                    content_type=cfg["contentType"],
                    sort_by=cfg["sortBy"],
                    sort_order=cfg["sortOrder"],
                    limit=cfg["limit"],
                    offset=cfg["offset"],
                )
        except Exception:
            log.warning("listing prefetch failed for block %s on site %s", block_id, site_id, exc_info=True)
    return out
