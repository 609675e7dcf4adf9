# app/services/composer.py
# Pure block ordering: navigation first, footer last, the rest by display_order.
from __future__ import annotations

from typing import Any, Iterable, List, Tuple

from app.block_registry import title_for


def block_type_of(block: Any) -> str | None:
    if isinstance(block, dict):
        return block.get("type") or block.get("block_type")
    return getattr(block, "block_type", None)


def display_order_of(block: Any) -> int:
    if isinstance(block, dict):
        value = block.get("display_order")
    else:
        value = getattr(block, "display_order", None)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def partition_blocks(blocks: Iterable[Any]) -> Tuple[List[Any], List[Any], List[Any]]:
    """(navigation, reorderable, footer), each sorted by stored order; stable."""
    nav, middle, footer = [], [], []
    for b in blocks:
        t = block_type_of(b)
        if t == "navigation":
            nav.append(b)
        elif t == "footer":
            footer.append(b)
        else:
            middle.append(b)
    key = display_order_of
    return sorted(nav, key=key), sorted(middle, key=key), sorted(footer, key=key)


def compose_blocks(global_blocks: Iterable[Any], page_blocks: Iterable[Any]) -> List[Any]:
    """
    Rendered sequence for a page. Protected placement never depends on stored
    display_order: navigation blocks always lead and footer blocks always close.
    """
    nav, middle, footer = partition_blocks(list(global_blocks) + list(page_blocks))
    return nav + middle + footer


def block_to_dict(block: Any) -> dict:
    """Uniform shape for PageBlock rows and content_blocks entries."""
    if isinstance(block, dict):
        t = block_type_of(block)
        return {
            "id": block.get("id"),
            "type": t,
            "title": block.get("title") or title_for(t),
            "content": block.get("content") or {},
            "display_order": display_order_of(block),
            "page_slug": block.get("page_slug"),
        }
    return {
        "id": block.id,
        "type": block.block_type,
        "title": title_for(block.block_type),
        "content": block.content or {},
        "display_order": block.display_order,
        "page_slug": block.page_slug,
    }
