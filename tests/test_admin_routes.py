"""Admin authoring API and app-level CORS, exercised through reviewhub.main.app."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import utc

from reviewhub.db import get_session
from reviewhub.main import AdminCORSMiddleware, app
from reviewhub.models import Review, Widget, WidgetLocation, WidgetStatus
from reviewhub.routes_payload import router as payload_router
from reviewhub.routes_widgets import router as widgets_router
from reviewhub.widget_config import create_default_widget_config

PREFLIGHT_HEADERS = {"Origin": "https://shop.example", "Access-Control-Request-Method": "GET"}


@pytest.fixture()
def client(sqlite_db):
    async def override_session():
        async with sqlite_db.session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def review_id(sqlite_db) -> int:
    sqlite_db.seed(Widget(id=1, company_id="acme", name="Seeded", config_json=create_default_widget_config()))
    sqlite_db.seed(WidgetLocation(id=10, widget_id=1, place_id="p-10"))
    sqlite_db.seed(
        Review(id=100, widget_location_id=10, provider_review_id="g-100", author_name="Ann", rating=5,
               review_created_at=utc(2024, 1, 1), text="Great")
    )
    return 100


def _create(client, **body) -> dict:
    body.setdefault("company_id", "acme")
    body.setdefault("name", "Homepage")
    response = client.post("/api/widgets", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestWidgetCrud:
    def test_create_from_template(self, client):
        widget = _create(client, template="badge")

        assert widget["type"] == "badge"
        assert widget["status"] == WidgetStatus.draft.value
        assert widget["published_at"] is None
        assert widget["config_json"] == create_default_widget_config("badge")

    def test_create_normalizes_submitted_config(self, client):
        widget = _create(client, config={"layout": {"type": "grid", "columns": 9}, "junk": True})

        assert widget["type"] == "grid"
        assert widget["config_json"]["layout"]["columns"] == "auto"
        assert "junk" not in widget["config_json"]

    def test_create_rejects_blank_name(self, client):
        response = client.post("/api/widgets", json={"company_id": "acme", "name": "   "})

        assert response.status_code == 422

    def test_patch_keeps_type_in_sync_with_layout(self, client):
        widget = _create(client)

        response = client.patch(
            f"/api/widgets/{widget['id']}", json={"name": "  ", "config": {"layout": {"type": "list"}}}
        )

        assert response.status_code == 200
        assert response.json()["type"] == "list"
        assert response.json()["config_json"]["layout"]["type"] == "list"
        assert response.json()["name"] == "Homepage"

    def test_list_filters_by_company(self, client):
        _create(client, company_id="acme")
        _create(client, company_id="globex")

        response = client.get("/api/widgets", params={"company_id": "globex"})

        assert [w["company_id"] for w in response.json()] == ["globex"]

    def test_delete(self, client):
        widget = _create(client)
        client.post(f"/api/widgets/{widget['id']}/locations", json={"place_id": "p-1"})

        assert client.delete(f"/api/widgets/{widget['id']}").status_code == 204
        assert client.get(f"/api/widgets/{widget['id']}").status_code == 404

    def test_unknown_widget(self, client):
        assert client.get("/api/widgets/999").status_code == 404
        assert client.post("/api/widgets/999/publish").status_code == 404


class TestPublishing:
    def test_publish_once_then_toggle(self, client):
        widget = _create(client)
        assert client.get(f"/api/widgets/{widget['id']}/payload").status_code == 404

        first = client.post(f"/api/widgets/{widget['id']}/publish").json()
        assert first["status"] == WidgetStatus.published.value
        assert first["published_at"] is not None
        assert client.get(f"/api/widgets/{widget['id']}/payload").status_code == 200

        unpublished = client.post(f"/api/widgets/{widget['id']}/unpublish").json()
        assert unpublished["status"] == WidgetStatus.draft.value
        assert unpublished["published_at"] == first["published_at"]
        assert client.get(f"/api/widgets/{widget['id']}/payload").status_code == 404

        again = client.post(f"/api/widgets/{widget['id']}/publish").json()
        assert again["published_at"] == first["published_at"]

    def test_summary_refresh(self, client, review_id):
        response = client.post("/api/widgets/1/summary/refresh")

        assert response.status_code == 200
        assert response.json()["total_reviews"] == 1
        assert response.json()["avg_rating"] == 5.0
        assert client.post("/api/widgets/999/summary/refresh").status_code == 404


class TestLocations:
    def test_duplicate_place_conflicts(self, client):
        widget = _create(client)
        url = f"/api/widgets/{widget['id']}/locations"

        created = client.post(url, json={"place_id": " place-1 ", "label": "Main st"})
        duplicate = client.post(url, json={"place_id": "place-1"})

        assert created.status_code == 201
        assert created.json()["place_id"] == "place-1"
        assert duplicate.status_code == 409

    def test_same_place_on_another_widget_is_allowed(self, client):
        first = _create(client)
        second = _create(client)

        client.post(f"/api/widgets/{first['id']}/locations", json={"place_id": "place-1"})
        response = client.post(f"/api/widgets/{second['id']}/locations", json={"place_id": "place-1"})

        assert response.status_code == 201

    def test_update_and_delete(self, client):
        widget = _create(client)
        location = client.post(f"/api/widgets/{widget['id']}/locations", json={"place_id": "place-1"}).json()

        updated = client.patch(f"/api/widget-locations/{location['id']}", json={"enabled": False, "weight": 3})

        assert updated.json()["enabled"] is False
        assert updated.json()["weight"] == 3
        assert client.delete(f"/api/widget-locations/{location['id']}").status_code == 204
        assert client.get(f"/api/widgets/{widget['id']}/locations").json() == []
        assert client.delete(f"/api/widget-locations/{location['id']}").status_code == 404


class TestOverrides:
    def test_upsert_updates_single_override(self, client, review_id):
        first = client.put(f"/api/reviews/{review_id}/override", json={"hidden": True})
        second = client.put(
            f"/api/reviews/{review_id}/override", json={"pinned": True, "custom_excerpt": "Short", "tags": ["vip"]}
        )

        assert first.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["hidden"] is False
        assert second.json()["pinned"] is True
        assert second.json()["tags"] == ["vip"]

    def test_delete_override(self, client, review_id):
        client.put(f"/api/reviews/{review_id}/override", json={"hidden": True})

        assert client.delete(f"/api/reviews/{review_id}/override").status_code == 204
        assert client.delete(f"/api/reviews/{review_id}/override").status_code == 404

    def test_unknown_review(self, client):
        assert client.put("/api/reviews/999/override", json={"hidden": True}).status_code == 404

    def test_hidden_review_leaves_payload(self, client, review_id):
        client.post("/api/widgets/1/publish")
        assert [r["id"] for r in client.get("/api/widgets/1/payload").json()["reviews"]] == [review_id]

        client.put(f"/api/reviews/{review_id}/override", json={"hidden": True})

        assert client.get("/api/widgets/1/payload").json()["reviews"] == []


class TestCors:
    def test_payload_preflight_answered_by_route(self, client):
        response = client.options("/api/widgets/1/payload", headers=PREFLIGHT_HEADERS)

        assert response.status_code == 204
        assert response.headers["access-control-max-age"] == "86400"
        assert response.headers["access-control-allow-origin"] == "https://shop.example"
        assert "access-control-allow-credentials" not in response.headers

    def test_admin_preflight_handled_by_middleware(self, client):
        response = client.options(
            "/api/widgets", headers={"Origin": "https://admin.example", "Access-Control-Request-Method": "POST"}
        )

        assert response.status_code == 200
        assert "access-control-allow-methods" in response.headers

    def test_restricted_admin_origins_do_not_block_embeds(self):
        restricted = FastAPI()
        restricted.add_middleware(AdminCORSMiddleware, allow_origins=["https://admin.example"], allow_methods=["*"])
        restricted.include_router(payload_router)
        restricted.include_router(widgets_router)
        client = TestClient(restricted)

        embed = client.options("/api/widgets/1/payload", headers=PREFLIGHT_HEADERS)
        admin = client.options(
            "/api/widgets", headers={"Origin": "https://shop.example", "Access-Control-Request-Method": "POST"}
        )

        assert embed.status_code == 204
        assert embed.headers["access-control-allow-origin"] == "https://shop.example"
        assert admin.status_code == 400
