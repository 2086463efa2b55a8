"""
TravelPlaces Backend — API Endpoint Tests
===========================================

What:  End-to-end tests of the HTTP surface through the ASGI app.
How:   httpx AsyncClient over ASGITransport; the shared materializer and
       image resolver fetch from FakeObjectStore (conftest `fake_store`).

What we test:
    ✅ Region, county and attraction routes return dataset content
    ✅ Query parameter names and defaults (minReviews, order, page, limit)
    ✅ Error mapping: 400 bad input, 404 unknown id, 503 missing dataset
    ✅ Cache-Control and X-Request-ID on responses, unexpected 500s included
    ✅ Datasets without a county column
    ✅ Local dataset copies are gone after every request
    ✅ /api/ip and /health
    ✅ /register and /login mounted only when enabled
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import settings


class TestRegionRoutes:

    @pytest.mark.asyncio
    async def test_regions(self, test_client, fake_store):
        response = await test_client.get("/regions/jp")

        assert response.status_code == 200
        assert sorted(response.json()) == ["Kyoto", "Osaka", "Tochigi", "Tokyo"]

    @pytest.mark.asyncio
    async def test_regions_in_county(self, test_client, fake_store):
        response = await test_client.get("/regions/jp/Kansai")

        assert response.status_code == 200
        assert sorted(response.json()) == ["Kyoto", "Osaka"]

    @pytest.mark.asyncio
    async def test_counties(self, test_client, fake_store):
        response = await test_client.get("/countis/jp")

        assert response.status_code == 200
        assert sorted(response.json()) == ["Kansai", "Kanto"]

    @pytest.mark.asyncio
    async def test_missing_dataset_is_503(self, test_client, fake_store):
        response = await test_client.get("/regions/zz")

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "upstream_unavailable"
        assert body["message"] == "Could not connect to the dataset. Please try again later."
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_invalid_country_is_400(self, test_client, fake_store):
        response = await test_client.get("/countis/j%20p")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"
        assert fake_store.calls == []


class TestAttractionRoutes:

    @pytest.mark.asyncio
    async def test_list_defaults(self, test_client, fake_store):
        response = await test_client.get("/attractions/jp")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 6
        assert [item["id"] for item in body["data"]] == [2, 4, 1, 3, 5, 6]
        first = body["data"][0]
        assert set(first) >= {
            "id", "name", "image1", "region", "county",
            "total_reviews", "rating", "positive_reviews",
        }
        assert "overview" not in first

    @pytest.mark.asyncio
    async def test_list_with_parameters(self, test_client, fake_store):
        response = await test_client.get(
            "/attractions/jp",
            params={"minReviews": 100, "order": "reviews_asc", "page": 1, "limit": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 4
        assert [item["id"] for item in body["data"]] == [3, 1]

    @pytest.mark.asyncio
    async def test_list_with_filters(self, test_client, fake_store):
        response = await test_client.get("/attractions/jp", params={"county": "Kanto", "region": "Tokyo"})

        body = response.json()
        assert body["total"] == 2
        assert sorted(item["id"] for item in body["data"]) == [4, 5]

    @pytest.mark.asyncio
    async def test_empty_filters_mean_no_filter(self, test_client, fake_store):
        response = await test_client.get("/attractions/jp", params={"region": "", "county": ""})

        assert response.json()["total"] == 6

    @pytest.mark.asyncio
    async def test_page_past_end(self, test_client, fake_store):
        response = await test_client.get("/attractions/jp", params={"page": 50})

        assert response.status_code == 200
        assert response.json() == {"total": 6, "data": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"order": "name"},
            {"page": 0},
            {"limit": 0},
            {"limit": 10_000},
            {"minReviews": -1},
            {"minReviews": "many"},
            {"page": 10**18},
            {"minReviews": 2**31},
        ],
    )
    async def test_invalid_parameters_are_400(self, test_client, fake_store, params):
        response = await test_client.get("/attractions/jp", params=params)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_input"
        assert body["details"]

    @pytest.mark.asyncio
    async def test_detail(self, test_client, fake_store):
        response = await test_client.get("/attraction/jp/1")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Kinkaku-ji"
        assert body["image1"] and body["image2"]
        assert body["image3"] is None
        assert body["website"] == "https://example.org/kinkakuji"

    @pytest.mark.asyncio
    async def test_detail_unknown_id_is_404(self, test_client, fake_store):
        response = await test_client.get("/attraction/jp/999")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_dataset_without_county(self, test_client, fake_store, dataset_factory):
        fake_store.objects["nz.db"] = dataset_factory(
            [{"id": 7, "name": "Hobbiton", "region": "Waikato", "total_reviews": 120}],
            column_types={"county": None},
        )

        listing = await test_client.get("/attractions/nz")
        detail = await test_client.get("/attraction/nz/7")
        filtered = await test_client.get("/attractions/nz", params={"county": "Otago"})
        counties = await test_client.get("/countis/nz")

        assert listing.status_code == 200
        assert listing.json()["data"][0]["county"] is None
        assert detail.status_code == 200
        assert detail.json()["county"] is None
        assert filtered.status_code == 400
        assert filtered.json()["error"] == "invalid_input"
        assert counties.json() == []

    @pytest.mark.asyncio
    async def test_dataset_copies_are_removed(self, test_client, fake_store):
        await test_client.get("/attractions/jp")
        await test_client.get("/attraction/jp/999")
        await test_client.get("/regions/jp")

        dataset_dir = Path(settings.dataset_dir)
        assert not dataset_dir.exists() or list(dataset_dir.iterdir()) == []


class TestCommonHeaders:

    @pytest.mark.asyncio
    async def test_cache_control_on_success_and_error(self, test_client, fake_store):
        ok = await test_client.get("/regions/jp")
        missing = await test_client.get("/regions/zz")

        assert ok.headers["Cache-Control"] == settings.cache_control_header
        assert missing.headers["Cache-Control"] == settings.cache_control_header

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client, fake_store):
        response = await test_client.get("/regions/jp")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client, fake_store):
        response = await test_client.get("/regions/zz", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_common_headers(self, fake_store):
        from app.main import create_app

        async def explode():
            raise RuntimeError("boom")

        app = create_app()
        app.add_api_route("/explode", explode)
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/explode", headers={"X-Request-ID": "trace-500"})

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"
        assert response.json()["request_id"] == "trace-500"
        assert response.headers["X-Request-ID"] == "trace-500"
        assert response.headers["Cache-Control"] == settings.cache_control_header


class TestServiceRoutes:

    @pytest.mark.asyncio
    async def test_ip_uses_advertised_host(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "advertised_host", "192.0.2.10")

        response = await test_client.get("/api/ip")

        assert response.status_code == 200
        assert response.json() == {"ip": "192.0.2.10", "port": settings.port}

    @pytest.mark.asyncio
    async def test_ip_discovers_address(self, test_client):
        with patch("app.routes.network.get_local_ip_address", return_value="10.1.2.3"):
            response = await test_client.get("/api/ip")

        assert response.json()["ip"] == "10.1.2.3"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        with patch("app.routes.health.object_store") as mock_store:
            mock_store.health_check = AsyncMock(return_value=True)
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["object_store"] == "available"
        assert body["credential_store"] == "disabled"

    @pytest.mark.asyncio
    async def test_health_degraded(self, test_client):
        with patch("app.routes.health.object_store") as mock_store:
            mock_store.health_check = AsyncMock(return_value=False)
            response = await test_client.get("/health")

        assert response.json()["status"] == "degraded"


class TestOptionalRoutes:

    @pytest.mark.asyncio
    async def test_auth_routes_absent_by_default(self, test_client):
        response = await test_client.post("/register", json={"username": "a", "password": "b"})

        assert response.status_code in (404, 405)

    @pytest.mark.asyncio
    async def test_county_regions_can_be_disabled(self, monkeypatch, fake_store):
        from app.main import create_app

        monkeypatch.setattr(settings, "county_regions_enabled", False)
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/regions/jp/Kansai")

        assert response.status_code == 404
        assert fake_store.calls == []


class TestAuthRoutes:

    @pytest_asyncio.fixture
    async def auth_client(self, monkeypatch):
        from app.database import Base, dispose_engine, engine
        from app.main import create_app

        monkeypatch.setattr(settings, "auth_enabled", True)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
        await dispose_engine()

    @pytest.mark.asyncio
    async def test_register_then_login(self, auth_client):
        credentials = {"username": "alice", "password": "correct horse"}

        registered = await auth_client.post("/register", json=credentials)
        logged_in = await auth_client.post("/login", json=credentials)

        assert registered.status_code == 201
        assert registered.json() == {"msg": "User registered successfully"}
        assert logged_in.status_code == 200
        assert logged_in.json() == {"msg": "Login successful"}

    @pytest.mark.asyncio
    async def test_register_twice(self, auth_client):
        credentials = {"username": "carol", "password": "pw"}

        await auth_client.post("/register", json=credentials)
        response = await auth_client.post("/register", json=credentials)

        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, auth_client):
        await auth_client.post("/register", json={"username": "dave", "password": "pw"})

        response = await auth_client.post("/login", json={"username": "dave", "password": "nope"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_missing_fields_are_400(self, auth_client):
        response = await auth_client.post("/login", json={"username": "dave"})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"
