import asyncio
from typing import List

import pytest
from fastapi.testclient import TestClient

from conftest import CannedLLM, make_item

from apps.api.main import app, get_item_store, get_llm_client
from libs.core.auth import sign_owner_key
from libs.core.exceptions import StoreError
from libs.core.models import SavedItem
from libs.core.settings import get_settings
from libs.db.memory_repository import InMemoryItemRepo
from libs.llm.embeddings_provider import get_embeddings_provider


class BrokenStore(InMemoryItemRepo):
    async def find(self, query, sort=None, limit=None) -> List[SavedItem]:
        raise StoreError("database unavailable")


@pytest.fixture()
def client(settings, degraded_embeddings, store):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_llm_client] = lambda: CannedLLM(available=False)
    app.dependency_overrides[get_embeddings_provider] = lambda: degraded_embeddings
    app.dependency_overrides[get_item_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth(settings):
    return {"Authorization": f"Bearer {sign_owner_key('alice', settings.auth_secret)}"}


def seed(store, *items):
    for item in items:
        asyncio.run(store.add(item))


def test_requests_without_valid_token_are_rejected(client, settings):
    assert client.get("/api/search").status_code == 401

    forged = sign_owner_key("alice", "wrong-secret")
    r = client.get("/api/items", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


def test_rejected_requests_never_open_the_store(client, store):
    opened = []

    def tracking_store():
        opened.append(True)
        return store

    app.dependency_overrides[get_item_store] = tracking_store

    assert client.get("/api/search", params={"q": "x"}).status_code == 401
    assert client.post("/api/items", json={"title": "t"}).status_code == 401
    assert client.get("/api/items").status_code == 401
    assert client.delete("/api/items/abc").status_code == 401
    assert opened == []


def test_search_does_not_take_a_today_parameter(client):
    params = client.get("/openapi.json").json()["paths"]["/api/search"]["get"]["parameters"]
    names = {p["name"] for p in params}
    assert "q" in names
    assert "today" not in names


def test_search_response_shape(client, store, auth):
    seed(
        store,
        make_item(title="Python tricks", keywords=["python"], embedding=[0.5] * 8),
        make_item("bob", "Python for bob"),
    )

    r = client.get("/api/search", params={"q": "python"}, headers=auth)

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["query"] == "python"
    assert body["aiFilters"] is None
    assert body["filters"]["type"] == "all"
    assert body["count"] == 1
    hit = body["results"][0]
    assert hit["title"] == "Python tricks"
    assert hit["similarity"] == pytest.approx(1.0)
    assert hit["ownerKey"] == "alice"
    assert "embedding" not in hit


def test_search_with_manual_filters(client, store, auth):
    seed(store, make_item(title="Grocery list", type="note"), make_item(title="Clip", type="video"))

    r = client.get(
        "/api/search",
        params={"type": "note", "dateRange": "all", "sortBy": "title"},
        headers=auth,
    )

    body = r.json()
    assert [i["title"] for i in body["results"]] == ["Grocery list"]
    assert body["aiFilters"] == ["Type: note"]
    assert body["filters"]["dateRange"] == "all"


def test_search_limit_is_validated(client, auth):
    assert client.get("/api/search", params={"limit": 500}, headers=auth).status_code == 422


def test_search_store_failure_returns_500(client, auth):
    app.dependency_overrides[get_item_store] = lambda: BrokenStore()

    r = client.get("/api/search", params={"q": "anything"}, headers=auth)

    assert r.status_code == 500
    assert r.json() == {
        "success": False,
        "error": "Failed to search items",
        "details": "database unavailable",
    }


def test_save_list_and_delete(client, auth):
    r = client.post(
        "/api/items",
        json={
            "title": "Quick carbonara",
            "url": "https://www.youtube.com/watch?v=abc",
            "topicUser": "recipes, dinner",
        },
        headers=auth,
    )
    assert r.status_code == 201
    saved = r.json()["item"]
    assert saved["type"] == "video"
    assert saved["platform"] == "youtube"
    assert saved["topicUser"] == ["recipes", "dinner"]
    assert saved["category"] == "recipes"
    assert "embedding" not in saved

    listing = client.get("/api/items", headers=auth).json()
    assert listing["count"] == 1
    assert listing["items"][0]["id"] == saved["id"]

    assert client.delete(f"/api/items/{saved['id']}", headers=auth).json() == {"success": True}
    assert client.delete(f"/api/items/{saved['id']}", headers=auth).status_code == 404


def test_save_requires_title(client, auth):
    assert client.post("/api/items", json={"title": ""}, headers=auth).status_code == 422
