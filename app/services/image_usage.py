# app/services/image_usage.py
# Best-effort notifications to the external image library about which blocks
# reference which images. Never raises into the caller.
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Set, Tuple

import httpx

from app.block_registry import IMAGE_FIELDS, IMAGE_LIST_FIELDS
from app.core.settings import settings

log = logging.getLogger(__name__)


def extract_image_urls(content: Any) -> Set[str]:
    found: Set[str] = set()

    def _walk(value: Any) -> None:
        if isinstance(value, dict):
            for key, v in value.items():
                if key in IMAGE_FIELDS and isinstance(v, str):
                    if v.strip():
                        found.add(v.strip())
                elif key in IMAGE_LIST_FIELDS and isinstance(v, list):
                    for entry in v:
                        if isinstance(entry, str) and entry.strip():
                            found.add(entry.strip())
                        else:
                            _walk(entry)
                        if isinstance(entry, dict):
                            for sub in ("src", "url"):
                                if isinstance(entry.get(sub), str) and entry[sub].strip():
                                    found.add(entry[sub].strip())
                else:
                    _walk(v)
        elif isinstance(value, list):
            for v in value:
                _walk(v)

    _walk(content)
    return found


def diff_image_urls(before: Any, after: Any) -> Tuple[List[str], List[str]]:
    """(added, removed), sorted for stable request ordering."""
    old, new = extract_image_urls(before), extract_image_urls(after)
    return sorted(new - old), sorted(old - new)


def _usage_payload(image_url: str, site_id: str, block_type: str, usage_context: str) -> dict:
    return {
        "image_url": image_url,
        "site_id": site_id,
        "block_type": block_type,
        "usage_context": usage_context,
    }


def track_image_usage(
    *,
    site_id: str,
    block_type: str,
    usage_context: str,
    added: Iterable[str] = (),
    removed: Iterable[str] = (),
    client: Optional[httpx.Client] = None,
) -> int:
    """
    Sends one POST per added and one DELETE per removed image to
    IMAGE_LIBRARY_URL/usage. Returns the number of successful calls.
    A missing IMAGE_LIBRARY_URL turns this into a no-op.
    """
    added, removed = list(added), list(removed)
    base = (settings.IMAGE_LIBRARY_URL or "").rstrip("/")
    if not base or not (added or removed):
        return 0

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.IMAGE_LIBRARY_TIMEOUT_SECONDS)

    url = f"{base}/usage"
    ok = 0
    try:
        for method, urls in (("POST", added), ("DELETE", removed)):
            for image_url in urls:
                body = _usage_payload(image_url, site_id, block_type, usage_context)
                try:
                    resp = client.request(method, url, json=body)
                    resp.raise_for_status()
                    ok += 1
                except httpx.HTTPError as e:
                    log.warning("image usage %s failed for %s: %s", method, image_url, e)
    finally:
        if owns_client:
            client.close()
    return ok
