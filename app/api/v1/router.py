# app/api/v1/router.py
from fastapi import APIRouter

from .endpoints import health, sites, content, blocks

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(sites.router)     # /sites
api_router.include_router(content.router)   # /sites/{id}/content/..., /content/...
api_router.include_router(blocks.router)    # /block-types, /sites/{id}/pages/..., /blocks/...
