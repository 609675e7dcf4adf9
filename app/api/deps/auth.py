# app/api/deps/auth.py  (thin re-export)
from __future__ import annotations
from app.deps.auth import (  # noqa: F401
    get_current_principal,
)
