# app/services/content_service.py
# Content store: CRUD + duplicate for pages/posts/products/events/directories,
# sub-block validation and the is_private accessors.
from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, and_, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import block_registry
from app.errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthenticated
from app.models.content import ContentItem, ContentType, PRIVACY_TYPES
from app.schemas.content import ContentItemCreate, ContentItemUpdate
from app.services.ownership import assert_owns_site, is_uuid
from app.services.slug_service import next_free_slug, slug_exists, slugify, validate_slug

log = logging.getLogger(__name__)

# plural forms used by listing blocks and URLs
_PLURALS = {
    "pages": ContentType.page.value,
    "posts": ContentType.post.value,
    "products": ContentType.product.value,
    "events": ContentType.event.value,
    "directories": ContentType.directory.value,
}

SETTINGS_KEY = "_settings"


def normalize_content_type(value: str) -> str:
    v = (value or "").strip().lower()
    v = _PLURALS.get(v, v)
    if v not in {t.value for t in ContentType}:
        raise InvalidInput(f"Unknown content type: {value}")
    return v


# -------- Privacy accessors --------
def get_is_private(item: ContentItem) -> bool:
    return bool(item.is_private)


def set_is_private(item: ContentItem, value: bool) -> None:
    if item.content_type not in PRIVACY_TYPES:
        if value:
            raise InvalidInput(f"Privacy is not supported for {item.content_type} items")
        return
    item.is_private = bool(value)


# -------- Sub-blocks --------
def _new_block_id() -> str:
    return f"block-{uuid.uuid4().hex[:12]}"


def _check_sub_block_type(block_type: Optional[str]) -> None:
    if not block_registry.is_known(block_type):
        raise InvalidInput(f"Unknown block type: {block_type}")
    # navigation/footer exist once per site, as global PageBlock rows
    if block_registry.is_protected(block_type):
        raise InvalidInput(f"{block_registry.title_for(block_type)} cannot be added to a content item")


def normalize_content_blocks(raw: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], Optional[bool]]:
    """
    Validates every sub-block and returns (blocks, legacy_is_private).

    Accepts both the canonical shape {id: {"type", "content", "display_order"}}
    and the legacy product shape {type: {...content, "display_order"}}; a
    legacy `_settings.is_private` flag is lifted out and returned separately.
    """
    if raw is None:
        return {}, None
    if not isinstance(raw, dict):
        raise InvalidInput("content_blocks must be an object")

    legacy_private: Optional[bool] = None
    out: Dict[str, Any] = {}
    for block_id, block in raw.items():
        if block_id == SETTINGS_KEY:
            if isinstance(block, dict) and "is_private" in block:
                legacy_private = bool(block.get("is_private"))
            continue
        if not isinstance(block, dict):
            raise InvalidInput(f"Block {block_id} must be an object")

        if isinstance(block.get("content"), dict):
            block_type = block.get("type") or (block_id if block_registry.is_known(block_id) else None)
            content = block["content"]
        else:
            # legacy: the key is the type and content is stored inline
            block_type = block.get("type") or block_id
            content = {k: v for k, v in block.items() if k not in ("type", "display_order")}

        _check_sub_block_type(block_type)
        block_registry.validate_block_content(block_type, content)

        order = block.get("display_order", 0)
        if not isinstance(order, int) or isinstance(order, bool):
            raise InvalidInput(f"Block {block_id}: display_order must be an integer")
        out[str(block_id)] = {
            "type": block_type,
            "content": copy.deepcopy(content),
            "display_order": order,
        }
    return out, legacy_private


def blocks_as_list(item: ContentItem) -> List[Dict[str, Any]]:
    blocks = []
    for block_id, block in (item.content_blocks or {}).items():
        if block_id == SETTINGS_KEY or not isinstance(block, dict):
            continue
        block_type = block.get("type") or block_id
        blocks.append(
            {
                "id": block_id,
                "type": block_type,
                "title": block_registry.title_for(block_type),
                "content": block.get("content") or {},
                "display_order": int(block.get("display_order") or 0),
            }
        )
    blocks.sort(key=lambda b: b["display_order"])
    return blocks


# -------- Queries --------
def _next_display_order(db: Session, *, site_id: str, content_type: str) -> int:
    current = db.scalar(
        select(func.max(ContentItem.display_order)).where(
            and_(ContentItem.site_id == site_id, ContentItem.content_type == content_type)
        )
    )
    return 0 if current is None else current + 1


def _get_owned_item(db: Session, *, principal_id: Optional[str], item_id: str) -> ContentItem:
    """Items of sites the caller does not own are reported as missing."""
    if not principal_id:
        raise Unauthenticated("Authentication required")
    if not is_uuid(item_id):
        raise InvalidInput("Invalid item ID format")
    item = db.get(ContentItem, str(item_id))
    if item is None or item.site.owner_id != str(principal_id):
        raise NotFound("Item not found")
    return item


def _unset_other_homepages(db: Session, *, site_id: str, keep_id: Optional[str]) -> None:
    conds = [
        ContentItem.site_id == site_id,
        ContentItem.content_type == ContentType.page.value,
        ContentItem.is_homepage.is_(True),
    ]
    if keep_id:
        conds.append(ContentItem.id != keep_id)
    db.execute(update(ContentItem).where(and_(*conds)).values(is_homepage=False))


def _flush_or_conflict(db: Session, slug: str) -> None:
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        log.info("slug collision on flush: %s", slug)
        raise Conflict("An item with this slug already exists")


def list_items(
    db: Session,
    *,
    principal_id: Optional[str],
    site_id: str,
    content_type: str,
) -> Sequence[ContentItem]:
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    content_type = normalize_content_type(content_type)
    stmt = (
        select(ContentItem)
        .where(and_(ContentItem.site_id == site_id, ContentItem.content_type == content_type))
        .order_by(ContentItem.display_order.asc(), ContentItem.created_at.desc())
    )
    return db.scalars(stmt).all()


def get_item(db: Session, *, principal_id: Optional[str], item_id: str) -> ContentItem:
    return _get_owned_item(db, principal_id=principal_id, item_id=item_id)


def create_item(
    db: Session,
    *,
    principal_id: Optional[str],
    site_id: str,
    content_type: str,
    payload: ContentItemCreate,
) -> ContentItem:
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    content_type = normalize_content_type(content_type)

    title = (payload.title or "").strip()
    if not title:
        raise InvalidInput("Title is required")

    if payload.slug:
        slug = validate_slug(payload.slug.strip())
    else:
        slug = slugify(title)
        if not slug:
            raise InvalidInput("Could not derive a slug from the title")
        validate_slug(slug)

    if slug_exists(db, site_id=site_id, content_type=content_type, slug=slug):
        raise Conflict(f"A {content_type} with this slug already exists")

    if payload.is_homepage and content_type != ContentType.page.value:
        raise InvalidInput("Only pages can be the homepage")

    blocks, legacy_private = normalize_content_blocks(payload.content_blocks)

    item = ContentItem(
        site_id=site_id,
        content_type=content_type,
        title=title,
        slug=slug,
        description=payload.description,
        meta_description=payload.meta_description,
        meta_keywords=payload.meta_keywords,
        featured_image=payload.featured_image,
        is_published=bool(payload.is_published),
        is_homepage=bool(payload.is_homepage),
        is_private=False,
        display_order=_next_display_order(db, site_id=site_id, content_type=content_type),
        content_blocks=blocks,
    )
    private = payload.is_private or bool(legacy_private)
    if private:
        set_is_private(item, True)

    if item.is_homepage:
        _unset_other_homepages(db, site_id=site_id, keep_id=None)

    db.add(item)
    _flush_or_conflict(db, slug)
    log.info("created %s %s (%s) on site %s", content_type, item.id, slug, site_id)
    return item


def update_item(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    payload: ContentItemUpdate,
) -> ContentItem:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    changes = payload.model_dump(exclude_unset=True)

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise InvalidInput("Title is required")
        item.title = title

    if "slug" in changes and changes["slug"] is not None and changes["slug"] != item.slug:
        slug = validate_slug(changes["slug"].strip())
        if slug_exists(db, site_id=item.site_id, content_type=item.content_type, slug=slug, excluding_id=item.id):
            raise Conflict(f"A {item.content_type} with this slug already exists")
        item.slug = slug

    for field in ("description", "meta_description", "meta_keywords", "featured_image"):
        if field in changes:
            setattr(item, field, changes[field])

    if changes.get("is_published") is not None:
        item.is_published = bool(changes["is_published"])
    if changes.get("display_order") is not None:
        item.display_order = int(changes["display_order"])

    if changes.get("is_homepage") is not None:
        if changes["is_homepage"] and item.content_type != ContentType.page.value:
            raise InvalidInput("Only pages can be the homepage")
        if changes["is_homepage"]:
            _unset_other_homepages(db, site_id=item.site_id, keep_id=item.id)
        item.is_homepage = bool(changes["is_homepage"])

    if "content_blocks" in changes and changes["content_blocks"] is not None:
        blocks, legacy_private = normalize_content_blocks(changes["content_blocks"])
        item.content_blocks = blocks
        if legacy_private is not None and "is_private" not in changes:
            set_is_private(item, legacy_private)

    if changes.get("is_private") is not None:
        set_is_private(item, changes["is_private"])

    _flush_or_conflict(db, item.slug)
    return item


def delete_item(db: Session, *, principal_id: Optional[str], item_id: str) -> None:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    if item.is_homepage:
        raise InvalidInput("Cannot delete the homepage. Set another page as the homepage first.")
    db.delete(item)
    db.flush()
    log.info("deleted %s %s on site %s", item.content_type, item.id, item.site_id)


def duplicate_item(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    new_title: Optional[str] = None,
) -> ContentItem:
    """Copy with a fresh slug; the copy always starts unpublished and never as homepage."""
    src = _get_owned_item(db, principal_id=principal_id, item_id=item_id)

    title = (new_title or "").strip() or f"{src.title} (Copy)"
    base = slugify(title) or slugify(src.title) or src.content_type
    slug = next_free_slug(db, site_id=src.site_id, content_type=src.content_type, base=base)

    copy_item = ContentItem(
        site_id=src.site_id,
        content_type=src.content_type,
        title=title,
        slug=slug,
        description=src.description,
        meta_description=src.meta_description,
        meta_keywords=src.meta_keywords,
        featured_image=src.featured_image,
        is_published=False,
        is_homepage=False,
        is_private=src.is_private,
        display_order=_next_display_order(db, site_id=src.site_id, content_type=src.content_type),
        content_blocks=copy.deepcopy(src.content_blocks or {}),
    )
    db.add(copy_item)
    _flush_or_conflict(db, slug)
    return copy_item


# -------- Sub-block operations --------
def get_item_blocks(db: Session, *, principal_id: Optional[str], item_id: str) -> List[Dict[str, Any]]:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    return blocks_as_list(item)


def replace_item_blocks(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    content_blocks: Dict[str, Any],
) -> ContentItem:
    return update_item(
        db,
        principal_id=principal_id,
        item_id=item_id,
        payload=ContentItemUpdate(content_blocks=content_blocks),
    )


def add_item_block(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    block_type: str,
    content: Optional[Dict[str, Any]] = None,
) -> Tuple[ContentItem, str]:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    _check_sub_block_type(block_type)
    if content is None:
        content = block_registry.default_content_for(block_type)
    block_registry.validate_block_content(block_type, content)

    blocks = copy.deepcopy(item.content_blocks or {})
    orders = [b.get("display_order", 0) for k, b in blocks.items() if k != SETTINGS_KEY and isinstance(b, dict)]
    block_id = _new_block_id()
    blocks[block_id] = {
        "type": block_type,
        "content": content,
        "display_order": (max(orders) + 1) if orders else 0,
    }
    item.content_blocks = blocks
    db.flush()
    return item, block_id


def update_item_block(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    block_id: str,
    content: Dict[str, Any],
) -> ContentItem:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    blocks = copy.deepcopy(item.content_blocks or {})
    block = blocks.get(block_id)
    if block_id == SETTINGS_KEY or not isinstance(block, dict):
        raise NotFound("Block not found")
    block_type = block.get("type") or block_id
    block_registry.validate_block_content(block_type, content)
    block["content"] = content
    item.content_blocks = blocks
    db.flush()
    return item


def delete_item_block(
    db: Session,
    *,
    principal_id: Optional[str],
    item_id: str,
    block_id: str,
) -> ContentItem:
    item = _get_owned_item(db, principal_id=principal_id, item_id=item_id)
    blocks = copy.deepcopy(item.content_blocks or {})
    if block_id == SETTINGS_KEY or block_id not in blocks:
        raise NotFound("Block not found")
    block = blocks[block_id]
    block_type = block.get("type") if isinstance(block, dict) else None
    if block_registry.is_protected(block_type or block_id):
        raise Forbidden(block_registry.protection_reason(block_type or block_id) or "Protected block")
    del blocks[block_id]
    item.content_blocks = blocks
    db.flush()
    return item
