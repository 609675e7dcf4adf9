from __future__ import annotations

import json

import httpx

from app.core.settings import settings
from app.services.image_usage import diff_image_urls, extract_image_urls, track_image_usage


def test_extract_finds_single_and_list_fields():
    content = {
        "heroImage": "https://cdn.example.com/hero.png",
        "title": "not an image",
        "images": ["/a.png", {"src": "/b.png"}],
        "nested": {"featuredImage": "/c.png"},
        "logo": "",
    }
    assert extract_image_urls(content) == {"https://cdn.example.com/hero.png", "/a.png", "/b.png", "/c.png"}


def test_diff_reports_added_and_removed():
    added, removed = diff_image_urls({"heroImage": "/old.png"}, {"heroImage": "/new.png"})
    assert added == ["/new.png"]
    assert removed == ["/old.png"]
    assert diff_image_urls({"heroImage": "/same.png"}, {"heroImage": "/same.png"}) == ([], [])


def test_track_posts_and_deletes(monkeypatch):
    monkeypatch.setattr(settings, "IMAGE_LIBRARY_URL", "https://images.test/api/")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        ok = track_image_usage(
            site_id="site-1", block_type="hero", usage_context="page_block:home",
            added=["/new.png"], removed=["/old.png"], client=client,
        )

    assert ok == 2
    assert [(m, u) for m, u, _ in seen] == [
        ("POST", "https://images.test/api/usage"),
        ("DELETE", "https://images.test/api/usage"),
    ]
    assert seen[0][2] == {
        "image_url": "/new.png", "site_id": "site-1", "block_type": "hero", "usage_context": "page_block:home",
    }


def test_track_is_a_noop_without_a_configured_library(monkeypatch):
    monkeypatch.setattr(settings, "IMAGE_LIBRARY_URL", None)

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        assert track_image_usage(site_id="s", block_type="hero", usage_context="x", added=["/a.png"], client=client) == 0


def test_track_failures_are_logged_not_raised(monkeypatch, caplog):
    monkeypatch.setattr(settings, "IMAGE_LIBRARY_URL", "https://images.test")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(500)
        raise httpx.ConnectError("unreachable", request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        ok = track_image_usage(
            site_id="s", block_type="hero", usage_context="x",
            added=["/a.png"], removed=["/b.png"], client=client,
        )

    assert ok == 0
    assert "image usage POST failed" in caplog.text
