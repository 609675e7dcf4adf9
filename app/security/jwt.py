# app/security/jwt.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt
from app.core.settings import settings

ALGO = settings.JWT_ALGORITHM or "HS256"
SECRET = settings.JWT_SECRET_KEY or "dev-secret"
ACCESS_MIN = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _exp_ts(minutes: int) -> int:
    # exp as integer UNIX seconds
    return int((_utcnow() + timedelta(minutes=minutes)).timestamp())


def create_access_token(subject: str, extra: Dict[str, Any] | None = None, minutes: int | None = None) -> str:
    """
    Tokens normally come from the identity provider; this exists for tooling
    and tests that need a principal.
    """
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "type": "access",
        "iat": int(_utcnow().timestamp()),
        "exp": _exp_ts(ACCESS_MIN if minutes is None else minutes),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, SECRET, algorithm=ALGO)


def decode_token(token: str) -> Dict[str, Any]:
    # JWTError / ExpiredSignatureError propagate; the caller answers 401
    return jwt.decode(
        token,
        SECRET,
        algorithms=[ALGO],
        options={"verify_aud": False, "verify_iss": False},
    )
