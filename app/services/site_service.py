# app/services/site_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict, InvalidInput, Unauthenticated
from app.models.content import ContentItem, ContentType
from app.models.site import Site, SiteStatus
from app.schemas.site import SiteCreate, SiteUpdate
from app.services.block_service import provision_site_blocks
from app.services.ownership import assert_owns_site
from app.services.slug_service import derive_subdomain, is_valid_subdomain, subdomain_taken

log = logging.getLogger(__name__)

MAX_SUBDOMAIN_ATTEMPTS = 10
HOME_SLUG = "home"


def _pick_subdomain(db: Session, base: str) -> str:
    if not subdomain_taken(db, base):
        return base
    for i in range(1, MAX_SUBDOMAIN_ATTEMPTS + 1):
        candidate = f"{base}-{i}"
        if not subdomain_taken(db, candidate):
            return candidate
    raise Conflict("Could not find an available subdomain, please pick one")


def create_site(db: Session, *, principal_id: Optional[str], payload: SiteCreate) -> Site:
    """
    New site with its global navigation/footer blocks and a published "home" page.
    """
    if not principal_id:
        raise Unauthenticated("Authentication required")

    if payload.subdomain:
        subdomain = payload.subdomain.strip().lower()
        if not is_valid_subdomain(subdomain):
            raise InvalidInput("Invalid subdomain format")
        if subdomain_taken(db, subdomain):
            raise Conflict("Subdomain is already taken")
    else:
        base = derive_subdomain(payload.name)
        if not is_valid_subdomain(base):
            raise InvalidInput("Could not derive a subdomain from the site name")
        subdomain = _pick_subdomain(db, base)

    settings_bag: Dict[str, Any] = dict(payload.settings or {})
    settings_bag.setdefault("homepage_slug", HOME_SLUG)

    site = Site(
        owner_id=str(principal_id),
        name=payload.name.strip(),
        subdomain=subdomain,
        custom_domain=(payload.custom_domain or "").strip().lower() or None,
        status=SiteStatus.draft.value,
        settings=settings_bag,
    )
    db.add(site)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise Conflict("Subdomain or domain is already taken")

    provision_site_blocks(
        db,
        site,
        navigation=settings_bag.get("navigation"),
        footer=settings_bag.get("footer"),
    )
    home = ContentItem(
        site_id=site.id,
        content_type=ContentType.page.value,
        title="Home",
        slug=HOME_SLUG,
        is_homepage=True,
        is_published=True,
        display_order=0,
        content_blocks={},
    )
    db.add(home)
    db.flush()
    log.info("created site %s (%s) for %s", site.id, subdomain, principal_id)
    return site


def get_site(db: Session, *, principal_id: Optional[str], site_id: str) -> Site:
    return assert_owns_site(db, principal_id=principal_id, site_id=site_id)


def list_sites(db: Session, *, principal_id: Optional[str]) -> Sequence[Site]:
    if not principal_id:
        raise Unauthenticated("Authentication required")
    stmt = select(Site).where(Site.owner_id == str(principal_id)).order_by(Site.created_at.desc())
    return db.scalars(stmt).all()


def update_site(db: Session, *, principal_id: Optional[str], site_id: str, payload: SiteUpdate) -> Site:
    site = assert_owns_site(db, principal_id=principal_id, site_id=site_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("name"):
        site.name = changes["name"].strip()
    if changes.get("status"):
        site.status = changes["status"]
    if "custom_domain" in changes:
        site.custom_domain = (changes["custom_domain"] or "").strip().lower() or None
    if changes.get("settings") is not None:
        merged = dict(site.settings or {})
        merged.update(changes["settings"])
        site.settings = merged

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise Conflict("Domain is already in use by another site")
    return site
