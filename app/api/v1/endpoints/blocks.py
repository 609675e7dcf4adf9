# app/api/v1/endpoints/blocks.py
# Site-level blocks: registry, per-page composition, add/reorder/edit/delete.
from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.orm import Session

from app.api.deps.auth import get_current_principal
from app.block_registry import build_registry
from app.db.session import get_db
from app.errors import SiteBuilderError
from app.schemas.blocks import (
    BlockActiveUpdate, BlockAdd, BlockContentUpdate, BlockReorder, BlockTypeOut,
    ComposedBlockOut, PageBlockOut,
)
from app.services import block_service
from app.services.composer import block_to_dict
from app.services.image_usage import diff_image_urls, track_image_usage

router = APIRouter(tags=["blocks"])


@router.get("/block-types", response_model=List[BlockTypeOut])
def list_block_types():
    return list(build_registry().values())


@router.get("/sites/{site_id}/blocks", response_model=Dict[str, List[PageBlockOut]])
def list_site_blocks_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    grouped = block_service.list_site_blocks(db, principal_id=principal_id, site_id=site_id)
    return {slug: [PageBlockOut.model_validate(b) for b in blocks] for slug, blocks in grouped.items()}


@router.get("/sites/{site_id}/pages/{page_slug}/blocks", response_model=List[ComposedBlockOut])
def get_page_blocks_endpoint(
    site_id: str,
    page_slug: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    blocks = block_service.get_page_blocks(db, principal_id=principal_id, site_id=site_id, page_slug=page_slug)
    return [block_to_dict(b) for b in blocks]


@router.post("/sites/{site_id}/pages/{page_slug}/blocks", response_model=PageBlockOut, status_code=201)
def add_block_endpoint(
    site_id: str,
    page_slug: str,
    payload: BlockAdd,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        block = block_service.add_block(
            db, principal_id=principal_id, site_id=site_id, page_slug=page_slug, block_type=payload.block_type,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(block)
    return block


@router.put("/sites/{site_id}/pages/{page_slug}/blocks/order", response_model=List[PageBlockOut])
def reorder_blocks_endpoint(
    site_id: str,
    page_slug: str,
    payload: BlockReorder,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    # single commit: either every display_order is rewritten or none is
    try:
        blocks = block_service.reorder_blocks(
            db, principal_id=principal_id, site_id=site_id, page_slug=page_slug, block_ids=payload.block_ids,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    return [PageBlockOut.model_validate(b) for b in blocks]


@router.patch("/blocks/{block_id}", response_model=PageBlockOut)
def update_block_content_endpoint(
    block_id: str,
    payload: BlockContentUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        block, previous = block_service.update_block_content(
            db, principal_id=principal_id, block_id=block_id, content=payload.content,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(block)

    added, removed = diff_image_urls(previous, block.content)
    if added or removed:
        background_tasks.add_task(
            track_image_usage,
            site_id=block.site_id,
            block_type=block.block_type,
            usage_context=f"page_block:{block.page_slug}",
            added=added,
            removed=removed,
        )
    return block


@router.patch("/blocks/{block_id}/active", response_model=PageBlockOut)
def set_block_active_endpoint(
    block_id: str,
    payload: BlockActiveUpdate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        block = block_service.set_block_active(
            db, principal_id=principal_id, block_id=block_id, is_active=payload.is_active,
        )
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(block)
    return block


@router.delete("/blocks/{block_id}", status_code=204)
def delete_block_endpoint(
    block_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        block_service.delete_block(db, principal_id=principal_id, block_id=block_id)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    return Response(status_code=204)
