# app/utils/payload_guard.py
from __future__ import annotations

import json
import re
from typing import Any, Iterator

from app.core.settings import settings
from app.errors import InvalidInput

# Markup that must never reach a block's stored content
DANGEROUS_PATTERNS = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<script\b", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    # inline event handlers, only when they sit inside a tag
    re.compile(r"<[^>]*\son\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe\b", re.IGNORECASE),
    re.compile(r"<object\b", re.IGNORECASE),
    re.compile(r"<embed\b", re.IGNORECASE),
)

UNSAFE_URL_SCHEMES = ("javascript:", "data:", "vbscript:", "file:", "about:", "blob:")
SAFE_URL_PREFIXES = ("http://", "https://", "/", "./", "../")


def serialized_size(data: Any) -> int:
    """Compact JSON wire-size in bytes."""
    try:
        return len(json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))
    except (TypeError, ValueError):
        raise InvalidInput("Invalid content format")


def enforce_block_content_size(content: Any) -> None:
    """
    Enforces the maximum serialized JSON size for a block's content.
    Raises InvalidInput on overflow or on content that is not JSON-serializable.
    """
    limit = int(settings.MAX_BLOCK_CONTENT_BYTES or 0)
    if limit <= 0:
        return
    size = serialized_size(content)
    if size > limit:
        raise InvalidInput(f"Content too large: {size} bytes, limit is {limit} bytes")


def contains_dangerous_markup(text: str) -> bool:
    return any(p.search(text) for p in DANGEROUS_PATTERNS)


def is_safe_url(url: str | None) -> bool:
    if not url:
        return False
    lowered = url.strip().lower()
    if lowered.startswith(UNSAFE_URL_SCHEMES):
        return False
    if lowered.startswith(SAFE_URL_PREFIXES):
        return True
    # bare relative path ("images/a.png"); no scheme, not protocol-relative
    return ":" not in lowered and not lowered.startswith("//")


def iter_faq_texts(content: Any) -> Iterator[tuple[str, str]]:
    """Yields (path, text) for every FAQ question and answer in block content."""
    items = content.get("faqItems") if isinstance(content, dict) else None
    if not isinstance(items, list):
        return
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        for field in ("question", "answer"):
            text = item.get(field)
            if isinstance(text, str):
                yield f"faqItems[{i}].{field}", text
