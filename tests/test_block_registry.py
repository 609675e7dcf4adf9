from __future__ import annotations

import pytest

from app import block_registry as reg
from app.errors import InvalidInput
from app.utils.payload_guard import is_safe_url


def test_titles_and_fallback():
    assert reg.title_for("navigation") == "Navigation"
    assert reg.title_for("hero") == "Hero Section"
    assert reg.title_for("faq") == "FAQ Section"
    assert reg.title_for("product-hotspot") == "Product Hotspot"
    assert reg.title_for("no-such-type") == "Block"
    assert reg.title_for(None) == "Block"


def test_default_content_is_a_fresh_copy():
    a = reg.default_content_for("hero")
    a["title"] = "changed"
    a["trustedByAvatars"].append("x")
    b = reg.default_content_for("hero")
    assert b["title"] == "New Hero Section"
    assert b["trustedByAvatars"] == []
    assert reg.default_content_for("unknown") == {}


def test_protection_flags():
    assert set(reg.PROTECTED_TYPES) == {"navigation", "footer"}
    assert reg.is_protected("footer")
    assert not reg.is_protected("hero")
    assert reg.protection_reason("navigation") == "Navigation is required for site structure"
    assert set(reg.USER_ADDABLE_TYPES) == {"hero", "rich-text", "faq"}


@pytest.mark.parametrize("block_type", ["hero", "rich-text", "faq", "navigation", "footer", "listing-views"])
def test_defaults_validate_against_their_own_schema(block_type):
    content = reg.default_content_for(block_type)
    assert reg.block_content_errors(block_type, content) == []


def test_faq_limits():
    too_many = {"faqItems": [{"id": f"i{i}", "question": "q", "answer": "a"} for i in range(51)]}
    with pytest.raises(InvalidInput):
        reg.validate_block_content("faq", too_many)

    long_question = {"faqItems": [{"id": "1", "question": "q" * 501, "answer": "a"}]}
    with pytest.raises(InvalidInput):
        reg.validate_block_content("faq", long_question)

    missing_answer = {"faqItems": [{"id": "1", "question": "q"}]}
    with pytest.raises(InvalidInput):
        reg.validate_block_content("faq", missing_answer)

    ok = {"faqItems": [{"id": "1", "question": "q" * 500, "answer": "a" * 2000}]}
    assert reg.validate_block_content("faq", ok) is ok


@pytest.mark.parametrize(
    "payload",
    [
        "<script>alert(1)</script>",
        "click <a href='javascript:alert(1)'>me</a>",
        "<img src=x onerror=alert(1)>",
        "<iframe src='https://evil'></iframe>",
        "<object data='x'></object>",
        "<embed src='x'>",
    ],
)
def test_dangerous_markup_is_rejected(payload):
    content = {"faqItems": [{"id": "1", "question": "Why?", "answer": payload}]}
    with pytest.raises(InvalidInput):
        reg.validate_block_content("faq", content)


def test_unsafe_image_url_is_rejected():
    content = reg.default_content_for("hero")
    content["heroImage"] = "data:image/png;base64,AAAA"
    with pytest.raises(InvalidInput):
        reg.validate_block_content("hero", content)

    content["heroImage"] = "https://cdn.example.com/a.png"
    reg.validate_block_content("hero", content)


def test_size_cap(monkeypatch):
    from app.core.settings import settings

    monkeypatch.setattr(settings, "MAX_BLOCK_CONTENT_BYTES", 100)
    with pytest.raises(InvalidInput) as exc:
        reg.validate_block_content("rich-text", {"content": "x" * 200})
    assert "too large" in str(exc.value)


def test_unknown_type_and_wrong_shape():
    assert reg.block_content_errors("nope", {}) == ["Unknown block type: nope"]
    assert reg.block_content_errors("hero", ["not", "an", "object"]) == ["Block content must be an object"]
    errors = reg.block_content_errors("hero", {"showParticles": "yes"})
    assert errors and errors[0].startswith("showParticles")


@pytest.mark.parametrize(
    "url, safe",
    [
        ("https://a.com/x.png", True),
        ("http://a.com", True),
        ("/images/x.png", True),
        ("./x.png", True),
        ("../x.png", True),
        ("images/x.png", True),
        ("//evil.com/x.png", False),
        ("javascript:alert(1)", False),
        ("JavaScript:alert(1)", False),
        ("vbscript:x", False),
        ("file:///etc/passwd", False),
        ("blob:https://a", False),
        ("mailto:a@b.c", False),
        ("", False),
        (None, False),
    ],
)
def test_is_safe_url(url, safe):
    assert is_safe_url(url) is safe


@pytest.mark.parametrize(
    "block_type, content",
    [
        ("rich-text", {"content": "<p>Buy one = get one free</p>"}),
        ("rich-text", {"content": "Status: online=yes"}),
        ("hero", {"title": "Why one = two", "subtitle": "cron runs at noon = daily"}),
        ("faq", {"faqItems": [{"id": "1", "question": "Is one = two?", "answer": "Only when online = true"}]}),
    ],
)
def test_plain_prose_with_equals_signs_is_accepted(block_type, content):
    assert reg.validate_block_content(block_type, content) is content


def test_markup_outside_faq_items_is_not_scanned():
    content = {"content": "<p>Use <code>&lt;script&gt;</code> tags carefully</p>"}
    assert reg.block_content_errors("rich-text", content) == []
    faq = {"faqItems": [{"id": "1", "question": "q", "answer": "<p onclick='x()'>hi</p>"}]}
    assert reg.block_content_errors("faq", faq) == ["faqItems[0].answer: contains potentially dangerous content"]
