# app/services/block_service.py
# Site-level blocks (page_blocks rows): listing, add, reorder, content edits, delete.
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, and_, func
from sqlalchemy.orm import Session

from app import block_registry
from app.errors import Forbidden, InvalidInput, NotFound, Unauthenticated
from app.models.content import PageBlock, GLOBAL_PAGE_SLUG
from app.models.site import Site
from app.services.composer import compose_blocks, partition_blocks
from app.services.ownership import assert_owns_site, is_uuid
from app.services.slug_service import validate_page_slug

log = logging.getLogger(__name__)

NAVIGATION_ORDER = 1
FOOTER_ORDER = 100
DEFAULT_INSERT_ORDER = 2


def _page_blocks(
    db: Session,
    *,
    site_id: str,
    page_slug: Optional[str] = None,
    include_inactive: bool = False,
) -> Sequence[PageBlock]:
    conds = [PageBlock.site_id == site_id]
    if not include_inactive:
        conds.append(PageBlock.is_active.is_(True))
    if page_slug is not None:
        conds.append(PageBlock.page_slug == page_slug)
    stmt = select(PageBlock).where(and_(*conds)).order_by(PageBlock.display_order.asc())
    return db.scalars(stmt).all()


def _get_owned_block(db: Session, *, principal_id: Optional[str], block_id: str) -> PageBlock:
    if not principal_id:
        raise Unauthenticated("Authentication required")
    if not is_uuid(block_id):
        raise InvalidInput("Invalid block ID format")
    block = db.get(PageBlock, str(block_id))
    if block is None or block.site.owner_id != str(principal_id):
        raise NotFound("Block not found")
    return block


# -----------------------------
# Provisioning
# -----------------------------
def provision_site_blocks(
    db: Session,
    site: Site,
    *,
    navigation: Optional[Dict[str, Any]] = None,
    footer: Optional[Dict[str, Any]] = None,
) -> Tuple[PageBlock, PageBlock]:
    """Global navigation + footer, created exactly once at site creation."""
    nav = PageBlock(
        site_id=site.id,
        block_type="navigation",
        page_slug=GLOBAL_PAGE_SLUG,
        content=navigation or block_registry.default_content_for("navigation"),
        display_order=NAVIGATION_ORDER,
        is_active=True,
    )
    foot = PageBlock(
        site_id=site.id,
        block_type="footer",
        page_slug=GLOBAL_PAGE_SLUG,
        content=footer or block_registry.default_content_for("footer"),
        display_order=FOOTER_ORDER,
        is_active=True,
    )
    db.add_all([nav, foot])
    db.flush()
    return nav, foot


# -----------------------------
# Reads
# -----------------------------
def list_site_blocks(db: Session, *, principal_id: Optional[str], site_id: str) -> Dict[str, List[PageBlock]]:
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    grouped: Dict[str, List[PageBlock]] = defaultdict(list)
    for block in _page_blocks(db, site_id=site_id):
        grouped[block.page_slug].append(block)
    return dict(grouped)


def get_page_blocks(
    db: Session,
    *,
    principal_id: Optional[str],
    site_id: str,
    page_slug: str,
) -> List[PageBlock]:
    """Composed global + page blocks, as the editor preview shows them."""
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    validate_page_slug(page_slug)
    global_blocks = _page_blocks(db, site_id=site_id, page_slug=GLOBAL_PAGE_SLUG)
    if page_slug == GLOBAL_PAGE_SLUG:
        return compose_blocks(global_blocks, [])
    page_blocks = _page_blocks(db, site_id=site_id, page_slug=page_slug)
    return compose_blocks(global_blocks, page_blocks)


# -----------------------------
# Writes
# -----------------------------
def add_block(
    db: Session,
    *,
    principal_id: Optional[str],
    site_id: str,
    page_slug: str,
    block_type: str,
) -> PageBlock:
    """
    Inserts after the last hero/navigation block of the page (order 2 when
    there is none). When that order is taken, later blocks (footer included)
    shift down by one so the new block always lands before the footer.
    """
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    validate_page_slug(page_slug)
    if not block_registry.is_user_addable(block_type):
        raise InvalidInput(f"Block type '{block_type}' cannot be added")

    # inactive rows keep their slot so they can be reactivated without collisions
    existing = list(_page_blocks(db, site_id=site_id, page_slug=page_slug, include_inactive=True))

    insert_order = DEFAULT_INSERT_ORDER
    anchors = [b for b in existing if b.is_active and b.block_type in ("hero", "navigation")]
    if anchors:
        insert_order = anchors[-1].display_order + 1

    if any(b.display_order == insert_order for b in existing):
        for b in existing:
            if b.display_order >= insert_order:
                b.display_order += 1

    block = PageBlock(
        site_id=site_id,
        block_type=block_type,
        page_slug=page_slug,
        content=block_registry.default_content_for(block_type),
        display_order=insert_order,
        is_active=True,
    )
    db.add(block)
    db.flush()
    log.info("added %s block %s to %s/%s at %s", block_type, block.id, site_id, page_slug, insert_order)
    return block


def reorder_blocks(
    db: Session,
    *,
    principal_id: Optional[str],
    site_id: str,
    page_slug: str,
    block_ids: List[str],
) -> List[PageBlock]:
    """
    Rewrites display_order densely from 1: navigation, the supplied ids in the
    given order, any reorderable blocks the caller left out (inactive ones
    included), then footer.
    Runs inside the caller's transaction; nothing is committed here.
    """
    validate_page_slug(page_slug)
    if not is_uuid(site_id):
        raise InvalidInput("Invalid site ID format")
    for block_id in block_ids:
        if not is_uuid(block_id):
            raise InvalidInput("Invalid block ID format")
    if len(set(block_ids)) != len(block_ids):
        raise InvalidInput("Duplicate block IDs in reorder request")

    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    if not block_ids:
        return []

    all_blocks = list(_page_blocks(db, site_id=site_id, page_slug=page_slug, include_inactive=True))
    by_id = {b.id: b for b in all_blocks}

    missing = [bid for bid in block_ids if bid not in by_id]
    if missing:
        raise NotFound("Some blocks not found or do not belong to this page")
    if any(block_registry.is_protected(by_id[bid].block_type) for bid in block_ids):
        raise InvalidInput("Navigation and footer blocks cannot be reordered")

    nav, middle, footer = partition_blocks(all_blocks)
    requested = [by_id[bid] for bid in block_ids]
    requested_ids = set(block_ids)
    omitted = [b for b in middle if b.id not in requested_ids]

    sequence = nav + requested + omitted + footer
    for position, block in enumerate(sequence, start=1):
        block.display_order = position
    db.flush()
    return sequence


def update_block_content(
    db: Session,
    *,
    principal_id: Optional[str],
    block_id: str,
    content: Dict[str, Any],
) -> Tuple[PageBlock, Dict[str, Any]]:
    """Returns (block, previous_content) so callers can diff image references."""
    block = _get_owned_block(db, principal_id=principal_id, block_id=block_id)
    block_registry.validate_block_content(block.block_type, content)
    previous = dict(block.content or {})
    block.content = dict(content)
    db.flush()
    return block, previous


def set_block_active(
    db: Session,
    *,
    principal_id: Optional[str],
    block_id: str,
    is_active: bool,
) -> PageBlock:
    block = _get_owned_block(db, principal_id=principal_id, block_id=block_id)
    if not is_active and block_registry.is_protected(block.block_type):
        raise Forbidden(block_registry.protection_reason(block.block_type) or "Block is protected")
    block.is_active = bool(is_active)
    db.flush()
    return block


def delete_block(db: Session, *, principal_id: Optional[str], block_id: str) -> PageBlock:
    block = _get_owned_block(db, principal_id=principal_id, block_id=block_id)
    if block_registry.is_protected(block.block_type):
        reason = block_registry.protection_reason(block.block_type)
        raise Forbidden(f"Cannot delete {block.block_type} block: {reason}")
    # a removed row leaves no updated_at behind; bump the site so Last-Modified moves
    block.site.updated_at = func.now()
    db.delete(block)
    db.flush()
    log.info("deleted %s block %s on site %s", block.block_type, block.id, block.site_id)
    return block
