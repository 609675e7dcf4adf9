from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.content import PageBlock

API = settings.API_V1_STR


# ---------- auth ----------
def test_admin_api_requires_a_token(client, site):
    assert client.get(f"{API}/sites").status_code == 401
    assert client.get(f"{API}/sites", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_block_types_are_listed(client, owner_headers):
    r = client.get(f"{API}/block-types", headers=owner_headers)
    assert r.status_code == 200
    by_type = {b["type"]: b for b in r.json()}
    assert len(by_type) == 15
    assert by_type["navigation"]["protected"] is True
    assert by_type["hero"]["user_addable"] is True


# ---------- sites ----------
def test_create_and_list_sites(client, owner_headers):
    r = client.post(f"{API}/sites", json={"name": "Blue Bakery"}, headers=owner_headers)
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["subdomain"] == "blue-bakery"
    assert created["status"] == "draft"

    listed = client.get(f"{API}/sites", headers=owner_headers).json()
    assert [s["id"] for s in listed] == [created["id"]]


def test_taken_subdomain_conflicts_with_error_shape(client, owner_headers, site):
    r = client.post(f"{API}/sites", json={"name": "Copycat", "subdomain": "acme-shop"}, headers=owner_headers)
    assert r.status_code == 409
    assert r.json() == {"error": "Conflict", "detail": "Subdomain is already taken"}

    avail = client.get(f"{API}/sites/subdomain-availability", params={"subdomain": "acme-shop"}, headers=owner_headers)
    assert avail.json()["available"] is False
    assert avail.json()["suggestions"][0] == "acme-shop-1"


def test_strangers_cannot_read_or_edit_a_site(client, stranger_headers, site):
    r = client.get(f"{API}/sites/{site.id}", headers=stranger_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "Unauthorized"

    r = client.patch(f"{API}/sites/{site.id}", json={"name": "Mine now"}, headers=stranger_headers)
    assert r.status_code == 403


def test_site_settings_are_merged(client, owner_headers, site):
    r = client.patch(f"{API}/sites/{site.id}", json={"settings": {"theme": {"primary": "#000"}}}, headers=owner_headers)
    assert r.status_code == 200
    bag = r.json()["settings"]
    assert bag["theme"] == {"primary": "#000"}
    assert bag["homepage_slug"] == "home"


# ---------- content ----------
def test_content_crud_over_http(client, owner_headers, stranger_headers, site):
    url = f"{API}/sites/{site.id}/content/posts"
    r = client.post(url, json={"title": "Hello World"}, headers=owner_headers)
    assert r.status_code == 201, r.text
    post = r.json()
    assert post["slug"] == "hello-world"

    dup = client.post(url, json={"title": "Other", "slug": "hello-world"}, headers=owner_headers)
    assert dup.status_code == 409
    assert dup.json()["error"] == "Conflict"

    assert client.get(f"{API}/content/{post['id']}", headers=stranger_headers).status_code == 404

    r = client.patch(f"{API}/content/{post['id']}", json={"is_published": True}, headers=owner_headers)
    assert r.json()["is_published"] is True

    copy = client.post(f"{API}/content/{post['id']}/duplicate", json={}, headers=owner_headers)
    assert copy.status_code == 201
    assert copy.json()["slug"] == "hello-world-copy"

    listed = client.get(url, headers=owner_headers).json()
    assert listed["total"] == 2

    assert client.delete(f"{API}/content/{post['id']}", headers=owner_headers).status_code == 204
    assert client.get(f"{API}/content/{post['id']}", headers=owner_headers).status_code == 404


def test_slug_conflict_warning(client, owner_headers, site):
    client.post(f"{API}/sites/{site.id}/content/products", json={"title": "Spring"}, headers=owner_headers)
    r = client.get(f"{API}/sites/{site.id}/slug-conflicts", params={"slug": "spring"}, headers=owner_headers)
    assert r.json() == {"has_conflict": True, "conflict_type": "product", "conflict_title": "Spring"}


def test_item_sub_blocks_over_http(client, owner_headers, site):
    item = client.post(f"{API}/sites/{site.id}/content/products", json={"title": "Lamp"}, headers=owner_headers).json()
    base = f"{API}/content/{item['id']}/blocks"

    r = client.post(base, json={"type": "rich-text"}, headers=owner_headers)
    assert r.status_code == 201
    block = r.json()
    assert block["title"] == "Rich Text"

    r = client.patch(f"{base}/{block['id']}", json={"content": {"content": "<p>Bright</p>"}}, headers=owner_headers)
    assert r.json()["content"] == {"content": "<p>Bright</p>"}

    bad = client.patch(f"{base}/{block['id']}", json={"content": {"headerAlign": "diagonal"}}, headers=owner_headers)
    assert bad.status_code == 400
    assert bad.json()["error"] == "InvalidInput"

    assert client.delete(f"{base}/{block['id']}", headers=owner_headers).status_code == 204
    assert client.get(base, headers=owner_headers).json() == []


# ---------- blocks ----------
def test_protected_block_delete_is_forbidden_and_row_survives(client, owner_headers, db: Session, site):
    nav = db.scalar(select(PageBlock).where(PageBlock.site_id == site.id, PageBlock.block_type == "navigation"))

    r = client.delete(f"{API}/blocks/{nav.id}", headers=owner_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden"
    assert db.get(PageBlock, nav.id) is not None


def test_add_and_reorder_blocks_over_http(client, owner_headers, site):
    base = f"{API}/sites/{site.id}/pages/home/blocks"
    hero = client.post(base, json={"block_type": "hero"}, headers=owner_headers).json()
    faq = client.post(base, json={"block_type": "faq"}, headers=owner_headers).json()
    assert hero["display_order"] < faq["display_order"]

    r = client.put(f"{base}/order", json={"block_ids": [faq["id"], hero["id"]]}, headers=owner_headers)
    assert r.status_code == 200
    assert [b["id"] for b in r.json()] == [faq["id"], hero["id"]]

    composed = client.get(base, headers=owner_headers).json()
    assert [b["type"] for b in composed] == ["navigation", "faq", "hero", "footer"]


def test_block_content_patch_validates(client, owner_headers, site):
    hero = client.post(f"{API}/sites/{site.id}/pages/home/blocks", json={"block_type": "hero"}, headers=owner_headers).json()

    r = client.patch(f"{API}/blocks/{hero['id']}", json={"content": {"title": "Welcome"}}, headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["content"] == {"title": "Welcome"}

    r = client.patch(f"{API}/blocks/{hero['id']}", json={"content": {"heroImage": "//evil.com/x.png"}}, headers=owner_headers)
    assert r.status_code == 400
