# app/services/ownership.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.errors import InvalidInput, NotFound, Unauthenticated, Unauthorized
from app.models.site import Site


def is_uuid(value: str | None) -> bool:
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError):
        return False
    return True


def assert_owns_site(db: Session, *, principal_id: Optional[str], site_id: str) -> Site:
    """
    The single access rule: the acting principal must own the site.
    Every mutating or owner-scoped read passes through here first.
    """
    if not principal_id:
        raise Unauthenticated("Authentication required")
    if not is_uuid(site_id):
        raise InvalidInput("Invalid site ID format")
    site = db.get(Site, str(site_id))
    if site is None:
        raise NotFound("Site not found")
    if site.owner_id != str(principal_id):
        raise Unauthorized("Access denied: You do not own this site")
    return site
