# app/api/v1/endpoints/sites.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps.auth import get_current_principal
from app.db.session import get_db
from app.errors import SiteBuilderError
from app.schemas.site import SiteCreate, SiteOut, SiteUpdate, SubdomainAvailabilityOut
from app.services import site_service
from app.services.slug_service import check_subdomain_availability

router = APIRouter(prefix="/sites", tags=["sites"])


@router.get("/subdomain-availability", response_model=SubdomainAvailabilityOut)
def subdomain_availability(
    subdomain: str = Query(..., min_length=1, max_length=63),
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    return check_subdomain_availability(db, subdomain)


@router.post("", response_model=SiteOut, status_code=201)
def create_site_endpoint(
    payload: SiteCreate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        site = site_service.create_site(db, principal_id=principal_id, payload=payload)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(site)
    return site


@router.get("", response_model=List[SiteOut])
def list_sites_endpoint(
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    return site_service.list_sites(db, principal_id=principal_id)


@router.get("/{site_id}", response_model=SiteOut)
def get_site_endpoint(
    site_id: str,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    return site_service.get_site(db, principal_id=principal_id, site_id=site_id)


@router.patch("/{site_id}", response_model=SiteOut)
def update_site_endpoint(
    site_id: str,
    payload: SiteUpdate,
    db: Session = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
):
    try:
        site = site_service.update_site(db, principal_id=principal_id, site_id=site_id, payload=payload)
        db.commit()
    except SiteBuilderError:
        db.rollback()
        raise
    db.refresh(site)
    return site
