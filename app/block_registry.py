# app/block_registry.py
# Block type registry: title, JSON Schema, default content and protection flags per type.
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from app.core.settings import settings
from app.errors import InvalidInput
from app.utils.payload_guard import (
    contains_dangerous_markup,
    enforce_block_content_size,
    is_safe_url,
    iter_faq_texts,
)

FALLBACK_TITLE = "Block"

# Keys whose string values are image URLs (also scanned by the image-usage notifier)
IMAGE_FIELDS = (
    "heroImage",
    "featuredImage",
    "featured_image",
    "backgroundImage",
    "image",
    "imageUrl",
    "logo",
)
IMAGE_LIST_FIELDS = ("trustedByAvatars", "images", "gallery")


@dataclass
class BlockDefinition:
    type: str
    title: str
    schema: Dict[str, Any] = field(default_factory=dict)
    default_content: Dict[str, Any] = field(default_factory=dict)
    # navigation/footer: never deleted, always bracket the composed page
    protected: bool = False
    protection_reason: Optional[str] = None
    # may be added by the page editor's "add block" action
    user_addable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "protected": self.protected,
            "protection_reason": self.protection_reason,
            "user_addable": self.user_addable,
            "default_content": copy.deepcopy(self.default_content),
        }


def _object_schema(properties: Dict[str, Any], required: List[str] | None = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


_STR = {"type": "string"}
_BOOL = {"type": "boolean"}
_INT = {"type": "integer"}

_LINK_ITEM = {
    "type": "object",
    "properties": {"label": _STR, "href": _STR, "url": _STR},
}

_FAQ_ITEM = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "question": {"type": "string", "minLength": 1, "maxLength": settings.MAX_FAQ_QUESTION_CHARS},
        "answer": {"type": "string", "minLength": 1, "maxLength": settings.MAX_FAQ_ANSWER_CHARS},
    },
    "required": ["id", "question", "answer"],
}

_RICH_TEXT_SAMPLE = (
    "<p>This is a sample rich text block. You can add <strong>bold text</strong>, "
    "<em>italic text</em>, create lists, add links, and format your content with "
    "professional typography.</p><ul><li>Create bullet points</li><li>Add numbered lists</li>"
    "<li>Include links and emphasis</li></ul><p>Perfect for contact pages, about sections, "
    "legal documents, and any content that needs professional formatting.</p>"
)


_DEFINITIONS: List[BlockDefinition] = [
    BlockDefinition(
        type="navigation",
        title="Navigation",
        protected=True,
        protection_reason="Navigation is required for site structure",
        schema=_object_schema({
            "logo": _STR,
            "logoText": _STR,
            "links": {"type": "array", "items": _LINK_ITEM},
            "style": {"type": "object"},
        }),
        default_content={"logo": "", "logoText": "", "links": [{"label": "Home", "href": "/"}], "style": {}},
    ),
    BlockDefinition(
        type="hero",
        title="Hero Section",
        user_addable=True,
        schema=_object_schema({
            "title": _STR,
            "subtitle": _STR,
            "primaryButton": _STR,
            "secondaryButton": _STR,
            "showRainbowButton": _BOOL,
            "githubLink": _STR,
            "showParticles": _BOOL,
            "trustedByAvatars": {"type": "array"},
            "heroImage": _STR,
            "showHeroImage": _BOOL,
        }),
        default_content={
            "title": "New Hero Section",
            "subtitle": "Add your subtitle here",
            "primaryButton": "Get Started",
            "secondaryButton": "Learn More",
            "showRainbowButton": False,
            "githubLink": "",
            "showParticles": True,
            "trustedByAvatars": [],
            "heroImage": "",
            "showHeroImage": False,
        },
    ),
    BlockDefinition(
        type="footer",
        title="Footer",
        protected=True,
        protection_reason="Footer is required for complete website",
        schema=_object_schema({
            "logo": _STR,
            "copyright": _STR,
            "links": {"type": "array", "items": _LINK_ITEM},
            "socialLinks": {"type": "array"},
        }),
        default_content={"logo": "", "copyright": "", "links": [], "socialLinks": []},
    ),
    BlockDefinition(
        type="rich-text",
        title="Rich Text",
        user_addable=True,
        schema=_object_schema({
            "title": _STR,
            "subtitle": _STR,
            "headerAlign": {"type": "string", "enum": ["left", "center", "right"]},
            "content": _STR,
        }),
        default_content={
            "title": "Content Section",
            "subtitle": "Professional content with rich formatting",
            "headerAlign": "left",
            "content": _RICH_TEXT_SAMPLE,
        },
    ),
    BlockDefinition(
        type="faq",
        title="FAQ Section",
        user_addable=True,
        schema=_object_schema({
            "title": _STR,
            "subtitle": _STR,
            "faqItems": {"type": "array", "items": _FAQ_ITEM, "maxItems": settings.MAX_FAQ_ITEMS},
        }),
        default_content={
            "title": "Frequently Asked Questions",
            "subtitle": (
                "Discover quick and comprehensive answers to common questions about our "
                "platform, services, and features."
            ),
            "faqItems": [
                {
                    "id": "item-1",
                    "question": "How long does shipping take?",
                    "answer": (
                        "Standard shipping takes 3-5 business days, depending on your location. "
                        "Express shipping options are available at checkout for 1-2 business day delivery."
                    ),
                },
                {
                    "id": "item-2",
                    "question": "What payment methods do you accept?",
                    "answer": (
                        "We accept all major credit cards (Visa, Mastercard, American Express), PayPal, "
                        "Apple Pay, and Google Pay. For enterprise customers, we also offer invoicing options."
                    ),
                },
                {
                    "id": "item-3",
                    "question": "Can I change or cancel my order?",
                    "answer": (
                        "You can modify or cancel your order within 1 hour of placing it. After this window, "
                        "please contact our customer support team who will assist you with any changes."
                    ),
                },
            ],
        },
    ),
    BlockDefinition(type="divider", title="Divider", schema=_object_schema({"style": _STR})),
    BlockDefinition(
        type="image-text",
        title="Image + Text",
        schema=_object_schema({
            "title": _STR,
            "content": _STR,
            "image": _STR,
            "imagePosition": {"type": "string", "enum": ["left", "right"]},
        }),
    ),
    BlockDefinition(
        type="listing-views",
        title="Listing Views",
        schema=_object_schema({
            "title": _STR,
            "contentType": {"type": "string", "enum": ["products", "posts", "events", "directories", "pages"]},
            "sortBy": {"type": "string", "enum": ["date", "title", "display_order"]},
            "sortOrder": {"type": "string", "enum": ["asc", "desc"]},
            "itemsToShow": {"type": "integer", "minimum": 1},
            "itemsPerPage": {"type": "integer", "minimum": 1},
            "isPaginated": _BOOL,
            "viewType": _STR,
        }),
        default_content={
            "title": "",
            "contentType": "products",
            "sortBy": "date",
            "sortOrder": "desc",
            "itemsToShow": 6,
            "itemsPerPage": 12,
            "isPaginated": False,
        },
    ),
    BlockDefinition(
        type="product-default",
        title="Product Information",
        schema=_object_schema({"featuredImage": _STR, "richText": _STR, "price": {"type": ["number", "string", "null"]}}),
        default_content={"featuredImage": "", "richText": ""},
    ),
    BlockDefinition(type="product-hero", title="Product Hero", schema=_object_schema({"title": _STR, "subtitle": _STR, "image": _STR})),
    BlockDefinition(type="product-details", title="Product Details", schema=_object_schema({"details": {"type": ["string", "array", "object"]}})),
    BlockDefinition(type="product-gallery", title="Product Gallery", schema=_object_schema({"images": {"type": "array"}})),
    BlockDefinition(type="product-features", title="Product Features", schema=_object_schema({"features": {"type": "array"}})),
    BlockDefinition(type="product-hotspot", title="Product Hotspot", schema=_object_schema({"image": _STR, "hotspots": {"type": "array"}})),
    BlockDefinition(type="product-pricing", title="Product Pricing", schema=_object_schema({"price": {"type": ["number", "string", "null"]}, "currency": _STR})),
]

REGISTRY: Dict[str, BlockDefinition] = {d.type: d for d in _DEFINITIONS}

BLOCK_TYPES = tuple(REGISTRY)
PROTECTED_TYPES = tuple(d.type for d in _DEFINITIONS if d.protected)
USER_ADDABLE_TYPES = tuple(d.type for d in _DEFINITIONS if d.user_addable)


# ---------- lookups ----------
def is_known(block_type: str | None) -> bool:
    return block_type in REGISTRY


def title_for(block_type: str | None) -> str:
    d = REGISTRY.get(block_type or "")
    return d.title if d else FALLBACK_TITLE


def default_content_for(block_type: str | None) -> Dict[str, Any]:
    d = REGISTRY.get(block_type or "")
    return copy.deepcopy(d.default_content) if d else {}


def schema_for(block_type: str | None) -> Optional[Dict[str, Any]]:
    d = REGISTRY.get(block_type or "")
    return d.schema if d else None


def is_protected(block_type: str | None) -> bool:
    return block_type in PROTECTED_TYPES


def protection_reason(block_type: str | None) -> Optional[str]:
    d = REGISTRY.get(block_type or "")
    return d.protection_reason if d else None


def is_user_addable(block_type: str | None) -> bool:
    return block_type in USER_ADDABLE_TYPES


def build_registry() -> Dict[str, Dict[str, Any]]:
    return {key: d.to_dict() for key, d in REGISTRY.items()}


# ---------- validation ----------
def _error_path(err) -> str:
    return ".".join(str(p) for p in err.path) or "content"


def _image_values(content: Any):
    """Yields (field, url) for image fields found anywhere in content."""
    if isinstance(content, dict):
        for key, value in content.items():
            if key in IMAGE_FIELDS and isinstance(value, str):
                yield key, value
            elif key in IMAGE_LIST_FIELDS and isinstance(value, list):
                for entry in value:
                    if isinstance(entry, str):
                        yield key, entry
                    elif isinstance(entry, dict):
                        for sub in ("src", "url", "image"):
                            if isinstance(entry.get(sub), str):
                                yield key, entry[sub]
                        yield from _image_values(entry)
            else:
                yield from _image_values(value)
    elif isinstance(content, list):
        for entry in content:
            yield from _image_values(entry)


def block_content_errors(block_type: str, content: Any) -> List[str]:
    """Returns every problem found in `content`; empty list means valid."""
    d = REGISTRY.get(block_type)
    if d is None:
        return [f"Unknown block type: {block_type}"]
    if not isinstance(content, dict):
        return ["Block content must be an object"]

    errors: List[str] = []
    validator = Draft202012Validator(d.schema)
    for err in sorted(validator.iter_errors(content), key=lambda e: list(e.path)):
        errors.append(f"{_error_path(err)}: {err.message}")

    for path, text in iter_faq_texts(content):
        if contains_dangerous_markup(text):
            errors.append(f"{path}: contains potentially dangerous content")

    for key, url in _image_values(content):
        if url and not is_safe_url(url):
            errors.append(f"{key}: unsafe URL")

    return errors


def validate_block_content(block_type: str, content: Any) -> Dict[str, Any]:
    """
    Size cap + schema + markup/URL checks. Raises InvalidInput with the first
    problem found; returns the content unchanged when valid.
    """
    enforce_block_content_size(content)
    errors = block_content_errors(block_type, content)
    if errors:
        raise InvalidInput(f"Invalid {block_type} content: {errors[0]}")
    return content
