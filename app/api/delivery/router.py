#  app/api/delivery/router.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.site import Site
from app.services import delivery_service
from app.services.http_cache import cached_json_response
from app.services.listing_service import get_listing_data

router = APIRouter(prefix="/delivery/v1", tags=["Delivery"])


def _last_modified(site: Site, rendered: Dict[str, Any]) -> Optional[datetime]:
    """Newest of the site row, the rendered page/item and its stored block rows."""
    candidates = [site.updated_at, rendered.get("updated_at")]
    for key in ("page", "item"):
        part = rendered.get(key) or {}
        if isinstance(part, dict) and isinstance(part.get("updated_at"), datetime):
            candidates.append(part["updated_at"])
    candidates = [c for c in candidates if c is not None]
    return max(candidates, key=lambda d: d.replace(tzinfo=None)) if candidates else None


def _render(
    db: Session,
    site: Site,
    slug: Optional[str],
    if_none_match: Optional[str],
    if_modified_since: Optional[str],
) -> Response:
    rendered = delivery_service.render_page(db, site, slug)
    return cached_json_response(
        rendered,
        if_none_match=if_none_match,
        if_modified_since=if_modified_since,
        last_modified=_last_modified(site, rendered),
        is_detail=True,
    )


# ---------- by subdomain ----------
@router.get("/sites/{subdomain}", summary="Homepage of a site (public)")
def get_site_home(
    subdomain: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    if_modified_since: str | None = Header(default=None, alias="If-Modified-Since"),
):
    site = delivery_service.get_site_for_host(db, subdomain=subdomain)
    return _render(db, site, None, if_none_match, if_modified_since)


@router.get("/sites/{subdomain}/pages", summary="Published pages of a site (public)")
def list_site_pages(
    subdomain: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
):
    site = delivery_service.get_site_for_host(db, subdomain=subdomain)
    pages = delivery_service.list_published_pages(db, site)
    return cached_json_response({"items": pages, "total": len(pages)}, if_none_match=if_none_match, is_detail=False)


@router.get("/sites/{subdomain}/pages/{slug}", summary="A page of a site (public)")
def get_site_page(
    subdomain: str,
    slug: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    if_modified_since: str | None = Header(default=None, alias="If-Modified-Since"),
):
    site = delivery_service.get_site_for_host(db, subdomain=subdomain)
    return _render(db, site, slug, if_none_match, if_modified_since)


@router.get("/sites/{subdomain}/listing", summary="Listing data for client-side paging (public)")
def get_site_listing(
    subdomain: str,
    content_type: str = Query("products"),
    sort_by: str = Query("date"),
    sort_order: str = Query("desc"),
    limit: int = Query(6, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
):
    site = delivery_service.get_site_for_host(db, subdomain=subdomain)
    data = get_listing_data(
        db,
        site_id=site.id,
        content_type=content_type,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return cached_json_response(data, if_none_match=if_none_match, is_detail=False)


@router.get("/sites/{subdomain}/items/{content_type}/{slug}", summary="A published post/product/event/directory (public)")
def get_site_item(
    subdomain: str,
    content_type: str,
    slug: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    if_modified_since: str | None = Header(default=None, alias="If-Modified-Since"),
):
    site = delivery_service.get_site_for_host(db, subdomain=subdomain)
    rendered = delivery_service.get_published_item(db, site, content_type, slug)
    return cached_json_response(
        rendered,
        if_none_match=if_none_match,
        if_modified_since=if_modified_since,
        last_modified=_last_modified(site, rendered),
        is_detail=True,
    )


@router.get("/subdomains/{subdomain}", summary="Does a subdomain exist / is it active (public)")
def subdomain_status(subdomain: str, db: Session = Depends(get_db)):
    return delivery_service.subdomain_exists(db, subdomain)


# ---------- by custom domain ----------
@router.get("/domains/{domain}", summary="Homepage of a site by custom domain (public)")
def get_domain_home(
    domain: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    if_modified_since: str | None = Header(default=None, alias="If-Modified-Since"),
):
    site = delivery_service.get_site_for_host(db, domain=domain)
    return _render(db, site, None, if_none_match, if_modified_since)


@router.get("/domains/{domain}/pages/{slug}", summary="A page of a site by custom domain (public)")
def get_domain_page(
    domain: str,
    slug: str,
    db: Session = Depends(get_db),
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    if_modified_since: str | None = Header(default=None, alias="If-Modified-Since"),
):
    site = delivery_service.get_site_for_host(db, domain=domain)
    return _render(db, site, slug, if_none_match, if_modified_since)
