# app/services/http_cache.py
# ETag, Last-Modified and Cache-Control helpers for the delivery feed
from __future__ import annotations

import hashlib
import json
from datetime import date, datetime, timezone
from typing import Any, Optional

from email.utils import format_datetime, parsedate_to_datetime
from fastapi import Response


def json_default(o: Any):
    """datetime/date -> ISO-8601; naive datetimes are taken as UTC."""
    if isinstance(o, datetime):
        return to_utc_seconds(o).isoformat()
    if isinstance(o, date):
        return o.isoformat()
    raise TypeError(f"Type not serializable: {type(o)}")


def dump_json(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=json_default).encode("utf-8")


def compute_etag_from_bytes(body: bytes) -> str:
    """
    ETag as the quoted sha256 hex of the body.
    """
    return '"' + hashlib.sha256(body).hexdigest() + '"'


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = {c.strip() for c in if_none_match.split(",")}
    bare = etag.strip('"')
    return "*" in candidates or etag in candidates or bare in candidates or f"W/{etag}" in candidates


# -----------------------------
# HTTP-date helpers (UTC)
# -----------------------------
def to_utc_seconds(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=0)


def httpdate(dt: datetime) -> str:
    """
    datetime -> HTTP-date (RFC 7231). format_datetime(..., usegmt=True) requires UTC.
    """
    return format_datetime(to_utc_seconds(dt), usegmt=True)


def parse_httpdate(value: str) -> datetime | None:
    """
    HTTP-date -> aware UTC datetime, None when unparseable.
    """
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    return to_utc_seconds(dt)


# -----------------------------
# Delivery cache policies
# -----------------------------
def cache_policy_for_list() -> dict[str, str]:
    return {"Cache-Control": "public, max-age=60, stale-while-revalidate=120"}


def cache_policy_for_detail() -> dict[str, str]:
    return {"Cache-Control": "public, max-age=300, stale-while-revalidate=600"}


def apply_delivery_cache_headers(
    resp: Response,
    *,
    etag: str | None,
    last_modified: datetime | None,
    is_detail: bool,
) -> None:
    """
    ETag, Last-Modified and Cache-Control (list vs detail).
    """
    if etag:
        resp.headers["ETag"] = etag
    if last_modified:
        resp.headers["Last-Modified"] = httpdate(last_modified)

    policy = cache_policy_for_detail() if is_detail else cache_policy_for_list()
    for k, v in policy.items():
        resp.headers[k] = v


def cached_json_response(
    payload: Any,
    *,
    if_none_match: str | None,
    if_modified_since: str | None = None,
    last_modified: datetime | None = None,
    is_detail: bool = True,
) -> Response:
    """
    200 with the JSON body, or 304 when the client's validators still match.
    If-None-Match takes precedence over If-Modified-Since.
    """
    body = dump_json(payload)
    etag = compute_etag_from_bytes(body)
    if last_modified is not None:
        last_modified = to_utc_seconds(last_modified)

    not_modified = False
    if if_none_match:
        not_modified = etag_matches(if_none_match, etag)
    elif if_modified_since and last_modified:
        ims = parse_httpdate(if_modified_since)
        not_modified = bool(ims and last_modified <= ims)

    if not_modified:
        resp = Response(status_code=304)
    else:
        resp = Response(content=body, media_type="application/json")
    apply_delivery_cache_headers(resp, etag=etag, last_modified=last_modified, is_detail=is_detail)
    return resp
