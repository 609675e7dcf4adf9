from __future__ import annotations

import uuid

import pytest
from sqlalchemy.orm import Session

from app.errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthenticated, Unauthorized
from app.schemas.content import ContentItemCreate, ContentItemUpdate
from app.services import content_service as cs
from app.services.delivery_service import render_page
from app.services.slug_service import check_conflict

OWNER = "owner-123"
STRANGER = "stranger-456"


def _mk_item(db: Session, site_id: str, content_type: str = "post", **kwargs):
    payload = ContentItemCreate(**kwargs)
    return cs.create_item(db, principal_id=OWNER, site_id=site_id, content_type=content_type, payload=payload)


# ---------- create ----------
def test_create_derives_slug_and_defaults_to_draft(db: Session, site):
    item = _mk_item(db, site.id, title="  Hello World  ")
    assert item.title == "Hello World"
    assert item.slug == "hello-world"
    assert item.is_published is False
    assert item.display_order == 0


def test_display_order_is_max_plus_one_and_not_compacted(db: Session, site):
    a = _mk_item(db, site.id, title="A")
    b = _mk_item(db, site.id, title="B")
    c = _mk_item(db, site.id, title="C")
    assert (a.display_order, b.display_order, c.display_order) == (0, 1, 2)

    cs.delete_item(db, principal_id=OWNER, item_id=b.id)
    d = _mk_item(db, site.id, title="D")
    assert d.display_order == 3


def test_same_slug_twice_conflicts_once(db: Session, site):
    _mk_item(db, site.id, title="Launch")
    with pytest.raises(Conflict):
        _mk_item(db, site.id, title="Launch again", slug="launch")


def test_same_slug_is_fine_across_types(db: Session, site):
    _mk_item(db, site.id, "post", title="Launch")
    product = _mk_item(db, site.id, "product", title="Launch")
    assert product.slug == "launch"


def test_create_validation(db: Session, site):
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, title="   ")
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, title="!!!")
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, title="Admin area", slug="admin")
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, "widgets", title="Nope")
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, "post", title="Post", is_homepage=True)


def test_create_validates_sub_blocks(db: Session, site):
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, title="Bad", content_blocks={"b1": {"type": "carousel", "content": {}}})
    with pytest.raises(InvalidInput):
        _mk_item(
            db, site.id, title="Bad FAQ",
            content_blocks={"b1": {"type": "faq", "content": {"faqItems": [{"id": "1", "question": "<script>x</script>", "answer": "a"}]}}},
        )


def test_legacy_product_block_shape_is_normalized(db: Session, site):
    product = _mk_item(
        db, site.id, "product", title="Chair",
        content_blocks={"product-default": {"featuredImage": "/img/chair.png", "richText": "<p>Nice</p>", "display_order": 0}},
    )
    assert product.content_blocks["product-default"] == {
        "type": "product-default",
        "content": {"featuredImage": "/img/chair.png", "richText": "<p>Nice</p>"},
        "display_order": 0,
    }


# ---------- homepage ----------
def test_setting_homepage_unsets_the_previous_one(db: Session, site):
    about = _mk_item(db, site.id, "page", title="About", is_published=True)
    cs.update_item(db, principal_id=OWNER, item_id=about.id, payload=ContentItemUpdate(is_homepage=True))
    db.commit()

    pages = cs.list_items(db, principal_id=OWNER, site_id=site.id, content_type="pages")
    homepages = [p.slug for p in pages if p.is_homepage]
    assert homepages == ["about"]


def test_homepage_cannot_be_deleted(db: Session, site):
    home = next(p for p in cs.list_items(db, principal_id=OWNER, site_id=site.id, content_type="page") if p.is_homepage)
    with pytest.raises(InvalidInput):
        cs.delete_item(db, principal_id=OWNER, item_id=home.id)


# ---------- update ----------
def test_update_merges_supplied_fields_only(db: Session, site):
    item = _mk_item(db, site.id, title="Post", description="keep me")
    updated = cs.update_item(db, principal_id=OWNER, item_id=item.id, payload=ContentItemUpdate(title="Renamed"))
    assert updated.title == "Renamed"
    assert updated.slug == "post"
    assert updated.description == "keep me"


def test_update_slug_rules(db: Session, site):
    a = _mk_item(db, site.id, title="First")
    b = _mk_item(db, site.id, title="Second")

    # unchanged slug is not a collision with itself
    cs.update_item(db, principal_id=OWNER, item_id=a.id, payload=ContentItemUpdate(slug="first"))
    with pytest.raises(Conflict):
        cs.update_item(db, principal_id=OWNER, item_id=b.id, payload=ContentItemUpdate(slug="first"))
    with pytest.raises(InvalidInput):
        cs.update_item(db, principal_id=OWNER, item_id=a.id, payload=ContentItemUpdate(title=" "))


def test_update_of_unknown_or_foreign_item_is_not_found(db: Session, site):
    item = _mk_item(db, site.id, title="Mine")
    with pytest.raises(NotFound):
        cs.update_item(db, principal_id=OWNER, item_id=str(uuid.uuid4()), payload=ContentItemUpdate(title="x"))
    with pytest.raises(NotFound):
        cs.update_item(db, principal_id=STRANGER, item_id=item.id, payload=ContentItemUpdate(title="x"))
    with pytest.raises(Unauthenticated):
        cs.update_item(db, principal_id=None, item_id=item.id, payload=ContentItemUpdate(title="x"))


def test_list_requires_ownership(db: Session, site):
    with pytest.raises(Unauthorized):
        cs.list_items(db, principal_id=STRANGER, site_id=site.id, content_type="post")


# ---------- duplicate ----------
def test_duplicate_picks_next_free_slug(db: Session, site):
    _mk_item(db, site.id, title="Launch", is_published=True)
    _mk_item(db, site.id, title="Launch 1", slug="launch-1")
    src = _mk_item(db, site.id, title="Original", is_published=True,
                   content_blocks={"b1": {"type": "hero", "content": {"title": "Hi"}, "display_order": 0}})

    copy_item = cs.duplicate_item(db, principal_id=OWNER, item_id=src.id, new_title="Launch")

    assert copy_item.slug == "launch-2"
    assert copy_item.is_published is False
    assert copy_item.content_blocks == src.content_blocks
    assert copy_item.display_order == src.display_order + 1


def test_duplicate_of_homepage_is_not_homepage(db: Session, site):
    home = next(p for p in cs.list_items(db, principal_id=OWNER, site_id=site.id, content_type="page") if p.is_homepage)
    copy_item = cs.duplicate_item(db, principal_id=OWNER, item_id=home.id)
    assert copy_item.title == "Home (Copy)"
    assert copy_item.slug == "home-copy"
    assert copy_item.is_homepage is False
    assert copy_item.is_published is False


# ---------- privacy ----------
def test_privacy_only_for_events_and_directories(db: Session, site):
    event = _mk_item(db, site.id, "event", title="Gala", is_private=True)
    assert cs.get_is_private(event) is True

    post = _mk_item(db, site.id, "post", title="Post")
    with pytest.raises(InvalidInput):
        cs.update_item(db, principal_id=OWNER, item_id=post.id, payload=ContentItemUpdate(is_private=True))


def test_legacy_settings_flag_is_lifted_into_column(db: Session, site):
    directory = _mk_item(db, site.id, "directory", title="Members", content_blocks={"_settings": {"is_private": True}})
    assert directory.is_private is True
    assert "_settings" not in directory.content_blocks

    cs.update_item(
        db, principal_id=OWNER, item_id=directory.id,
        payload=ContentItemUpdate(content_blocks={"_settings": {"is_private": False}}),
    )
    assert directory.is_private is False


# ---------- sub-blocks ----------
def test_sub_block_operations(db: Session, site):
    product = _mk_item(db, site.id, "product", title="Lamp")

    _, faq_id = cs.add_item_block(db, principal_id=OWNER, item_id=product.id, block_type="faq")
    _, gallery_id = cs.add_item_block(
        db, principal_id=OWNER, item_id=product.id, block_type="product-gallery", content={"images": ["/a.png"]},
    )
    blocks = cs.get_item_blocks(db, principal_id=OWNER, item_id=product.id)
    assert [b["id"] for b in blocks] == [faq_id, gallery_id]
    assert [b["display_order"] for b in blocks] == [0, 1]
    assert blocks[0]["title"] == "FAQ Section"
    assert len(blocks[0]["content"]["faqItems"]) == 3

    cs.update_item_block(db, principal_id=OWNER, item_id=product.id, block_id=gallery_id, content={"images": []})
    cs.delete_item_block(db, principal_id=OWNER, item_id=product.id, block_id=faq_id)
    blocks = cs.get_item_blocks(db, principal_id=OWNER, item_id=product.id)
    assert [(b["id"], b["content"]) for b in blocks] == [(gallery_id, {"images": []})]

    with pytest.raises(NotFound):
        cs.delete_item_block(db, principal_id=OWNER, item_id=product.id, block_id=faq_id)
    with pytest.raises(InvalidInput):
        cs.add_item_block(db, principal_id=OWNER, item_id=product.id, block_type="carousel")


# ---------- cross-type conflict check ----------
def test_check_conflict_reports_first_type_in_priority_order(db: Session, site):
    _mk_item(db, site.id, "product", title="Spring")
    _mk_item(db, site.id, "post", title="Spring Post", slug="spring")

    result = check_conflict(db, site_id=site.id, slug="spring")
    assert result.to_dict() == {"has_conflict": True, "conflict_type": "post", "conflict_title": "Spring Post"}

    assert check_conflict(db, site_id=site.id, slug="autumn").has_conflict is False


@pytest.mark.parametrize("block_type", ["navigation", "footer"])
def test_navigation_and_footer_are_not_item_sub_blocks(db: Session, site, block_type):
    home = next(p for p in cs.list_items(db, principal_id=OWNER, site_id=site.id, content_type="page") if p.is_homepage)

    with pytest.raises(InvalidInput):
        cs.add_item_block(db, principal_id=OWNER, item_id=home.id, block_type=block_type)
    with pytest.raises(InvalidInput):
        cs.replace_item_blocks(
            db, principal_id=OWNER, item_id=home.id,
            content_blocks={"b1": {"type": block_type, "content": {}}},
        )
    with pytest.raises(InvalidInput):
        _mk_item(db, site.id, "page", title="Legacy", content_blocks={block_type: {"links": []}})

    rendered = render_page(db, site)
    assert [b["type"] for b in rendered["blocks"]] == ["navigation", "footer"]


def test_stored_protected_sub_block_cannot_be_deleted(db: Session, site):
    page = _mk_item(db, site.id, "page", title="Old import")
    page.content_blocks = {"nav-1": {"type": "navigation", "content": {}, "display_order": 0}}
    db.flush()

    with pytest.raises(Forbidden):
        cs.delete_item_block(db, principal_id=OWNER, item_id=page.id, block_id="nav-1")
    assert "nav-1" in page.content_blocks


# ---------- same derived slug ----------
def test_titles_with_the_same_derived_slug_conflict_once(db: Session, site):
    outcomes = []
    for title in ("Launch", "Launch!"):
        try:
            _mk_item(db, site.id, title=title)
            outcomes.append("ok")
        except Conflict:
            outcomes.append("conflict")
    assert outcomes == ["ok", "conflict"]
