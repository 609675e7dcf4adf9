# app/models/__init__.py
# Import every model so Base.metadata is complete (alembic, create_all in tests)
from app.models.site import Site, SiteStatus  # noqa: F401
from app.models.content import ContentItem, ContentType, PageBlock  # noqa: F401
