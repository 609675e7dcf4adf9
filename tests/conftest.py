# tests/conftest.py
from __future__ import annotations

import os

# Settings require DATABASE_URL at import time; tests use their own engine below
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (populate metadata)
from app.db.base import Base
from app.db.session import get_db
from app.schemas.site import SiteCreate
from app.security.jwt import create_access_token
from app.services.site_service import create_site

OWNER = "owner-123"
STRANGER = "stranger-456"


@pytest.fixture(scope="function")
def engine():
    """
    Fresh in-memory SQLite per test. StaticPool keeps the single connection
    alive so the TestClient thread sees the same database.
    """
    eng = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """
    TestClient whose get_db dependency yields the test's session.
    """
    from app.main import app  # late import; settings must see DATABASE_URL first

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def _auth_headers(principal_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(principal_id)}"}


@pytest.fixture
def owner_headers() -> dict:
    return _auth_headers(OWNER)


@pytest.fixture
def stranger_headers() -> dict:
    return _auth_headers(STRANGER)


@pytest.fixture
def site(db: Session):
    s = create_site(db, principal_id=OWNER, payload=SiteCreate(name="Acme Shop"))
    db.commit()
    return s
