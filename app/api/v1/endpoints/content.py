# =============================================================================
# Content Endpoints (pages, posts, products, events, directories + sub-blocks)
# app/api/v1/endpoints/content.py
# =============================================================================
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.deps.auth import get_current_principal
from app.db.session import get_db
from app.errors import SiteBuilderError
from app.models.content import ContentItem
from app.schemas.content import (
    ContentItemCreate, ContentItemUpdate, ContentItemDuplicate, ContentItemOut, ContentItemListOut,
    SubBlockCreate, SubBlockUpdate, SubBlockOut, SubBlocksReplace, SlugConflictOut,
)
from app.services import content_service
from app.services.image_usage import diff_image_urls, track_image_usage
from app.services.ownership import assert_owns_site
from app.services.slug_service import check_conflict

router = APIRouter(tags=["content"])


def _schedule_image_tracking(
    background_tasks: BackgroundTasks,
    item: ContentItem,
    before: dict,
    after: dict,
) -> None:
    added, removed = diff_image_urls(before, after)
    if added or removed:
        background_tasks.add_task(
            track_image_usage,
            site_id=item.site_id,
            block_type=item.content_type,
            usage_context=f"{item.content_type}:{item.id}",
            added=added,
            removed=removed,
        )


def _image_snapshot(item: ContentItem) -> dict:
    return {"featured_image": item.featured_image, "blocks": dict(item.content_blocks or {})}


# ============================================================================ #
# Items
# ============================================================================ #
@router.get("/sites/{site_id}/content/{content_type}", response_model=ContentItemListOut)
def list_items_endpoint(
    site_id: str,
    content_type: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    items = content_service.list_items(db, principal_id=principal_id, site_id=site_id, content_type=content_type)
    return {"items": [ContentItemOut.model_validate(i) for i in items], "total": len(items)}


@router.post("/sites/{site_id}/content/{content_type}", response_model=ContentItemOut, status_code=201)
def create_item_endpoint(
    site_id: str,
    content_type: str,
    payload: ContentItemCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        item = content_service.create_item(
            db, principal_id=principal_id, site_id=site_id, content_type=content_type, payload=payload,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    _schedule_image_tracking(background_tasks, item, {}, _image_snapshot(item))
    return item


@router.get("/sites/{site_id}/slug-conflicts", response_model=SlugConflictOut)
def slug_conflicts_endpoint(
    site_id: str,
    slug: str = Query(..., min_length=1, max_length=100),
    excluding_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    """Cross-type collisions are reported for the editor to warn about; they never block a save."""
    assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    return check_conflict(db, site_id=site_id, slug=slug, excluding_id=excluding_id).to_dict()


@router.get("/content/{item_id}", response_model=ContentItemOut)
def get_item_endpoint(
    item_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    return content_service.get_item(db, principal_id=principal_id, item_id=item_id)


@router.patch("/content/{item_id}", response_model=ContentItemOut)
def update_item_endpoint(
    item_id: str,
    payload: ContentItemUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        before = _image_snapshot(content_service.get_item(db, principal_id=principal_id, item_id=item_id))
        item = content_service.update_item(db, principal_id=principal_id, item_id=item_id, payload=payload)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    _schedule_image_tracking(background_tasks, item, before, _image_snapshot(item))
    return item


@router.delete("/content/{item_id}", status_code=204)
def delete_item_endpoint(
    item_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        content_service.delete_item(db, principal_id=principal_id, item_id=item_id)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    return Response(status_code=204)


@router.post("/content/{item_id}/duplicate", response_model=ContentItemOut, status_code=201)
def duplicate_item_endpoint(
    item_id: str,
    payload: ContentItemDuplicate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        item = content_service.duplicate_item(db, principal_id=principal_id, item_id=item_id, new_title=payload.title)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    return item


# ============================================================================ #
# Sub-blocks of an item
# ============================================================================ #
@router.get("/content/{item_id}/blocks", response_model=List[SubBlockOut])
def list_item_blocks_endpoint(
    item_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    return content_service.get_item_blocks(db, principal_id=principal_id, item_id=item_id)


@router.put("/content/{item_id}/blocks", response_model=List[SubBlockOut])
def replace_item_blocks_endpoint(
    item_id: str,
    payload: SubBlocksReplace,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        before = _image_snapshot(content_service.get_item(db, principal_id=principal_id, item_id=item_id))
        item = content_service.replace_item_blocks(
            db, principal_id=principal_id, item_id=item_id, content_blocks=payload.content_blocks,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    _schedule_image_tracking(background_tasks, item, before, _image_snapshot(item))
    return content_service.blocks_as_list(item)


@router.post("/content/{item_id}/blocks", response_model=SubBlockOut, status_code=201)
def add_item_block_endpoint(
    item_id: str,
    payload: SubBlockCreate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        item, block_id = content_service.add_item_block(
            db, principal_id=principal_id, item_id=item_id, block_type=payload.type, content=payload.content,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    return next(b for b in content_service.blocks_as_list(item) if b["id"] == block_id)


@router.patch("/content/{item_id}/blocks/{block_id}", response_model=SubBlockOut)
def update_item_block_endpoint(
    item_id: str,
    block_id: str,
    payload: SubBlockUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        before = _image_snapshot(content_service.get_item(db, principal_id=principal_id, item_id=item_id))
        item = content_service.update_item_block(
            db, principal_id=principal_id, item_id=item_id, block_id=block_id, content=payload.content,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(item)
    _schedule_image_tracking(background_tasks, item, before, _image_snapshot(item))
    return next(b for b in content_service.blocks_as_list(item) if b["id"] == block_id)


@router.delete("/content/{item_id}/blocks/{block_id}", status_code=204)
def delete_item_block_endpoint(
    item_id: str,
    block_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        content_service.delete_item_block(db, principal_id=principal_id, item_id=item_id, block_id=block_id)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    return Response(status_code=204)
