# app/main.py
from __future__ import annotations

from fastapi.openapi.utils import get_openapi
from fastapi.responses import RedirectResponse
from fastapi.routing import APIRoute

from app.api.delivery.router import router as delivery_router
from app.api.v1.router import api_router
from app.core.config import create_app
from app.core.logging import configure_logging
from app.core.settings import settings

from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware


configure_logging(settings.LOG_LEVEL)
app = create_app()

app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

OPENAPI_TAGS = [
    {"name": "sites", "description": "Sites owned by the caller, subdomain checks"},
    {"name": "content", "description": "Pages, posts, products, events, directories and their sub-blocks"},
    {"name": "blocks", "description": "Block registry and per-page block composition"},
    {"name": "Delivery", "description": "Public, cacheable feed read by the site renderer"},
]


def _inject_bearer_security(app):
    """
    Adds bearerAuth globally to the OpenAPI document; /delivery/* is then
    marked public (docs only, the endpoints enforce their own rules).
    """
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=settings.APP_NAME,
            version="1.0.0",
            description="Multi-tenant site builder core",
            routes=app.routes,
            tags=OPENAPI_TAGS,
        )

        components = openapi_schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes["bearerAuth"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        openapi_schema["security"] = [{"bearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi


def _mark_delivery_routes_public(app):
    for route in app.routes:
        if isinstance(route, APIRoute):
            path = route.path or ""
            if path.startswith("/delivery/"):
                extra = dict(route.openapi_extra or {})
                extra["security"] = []
                route.openapi_extra = extra


_inject_bearer_security(app)


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs", status_code=302)


# Admin API (JWT)
app.include_router(api_router, prefix=settings.API_V1_STR)

# Public delivery feed for the frontend renderer
app.include_router(delivery_router)

_mark_delivery_routes_public(app)
