"""Tests for the FastAPI health, sync and site routes."""

import copy
import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock, MagicMock

from portfolio_sync.app import app
from portfolio_sync.routers import sync as sync_router
from portfolio_sync.routers.site import get_repository
from portfolio_sync.routers.sync import get_airtable_client, get_http_client
from portfolio_sync.sync.engine import SyncError
from portfolio_sync.sync.models import PortfolioData


@pytest_asyncio.fixture
async def client():
    """HTTPX async test client against the app; lifespan is not run."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def fake_airtable(airtable_tables):
    airtable = MagicMock()
    airtable.api_calls = 0
    airtable.fetch_table = AsyncMock(
        side_effect=lambda table, sort_field=None: copy.deepcopy(airtable_tables.get(table, []))
    )
    return airtable


@pytest.fixture
def sync_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(sync_router.settings, "output_dir", str(tmp_path))
    monkeypatch.setattr(sync_router.settings, "mode", "directing")
    monkeypatch.setattr(sync_router.settings, "sync_token", "")
    return sync_router.settings


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "portfolio"

    @pytest.mark.asyncio
    async def test_ready_reports_airtable_config(self, client, monkeypatch):
        monkeypatch.setattr(sync_router.settings, "airtable_token", "")

        response = await client.get("/ready")

        assert response.json()["airtable_configured"] is False


class TestSyncRoute:

    @pytest.mark.asyncio
    async def test_requires_bearer_token(self, client, sync_settings, fake_airtable, monkeypatch):
        monkeypatch.setattr(sync_settings, "sync_token", "secret")
        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable

        missing = await client.post("/sync")
        wrong = await client.post("/sync", headers={"Authorization": "Bearer wrong"})
        assert missing.status_code == 401
        assert wrong.status_code == 401
        ok = await client.post("/sync", headers={"Authorization": "Bearer secret"})
        assert ok.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_credentials_is_503(self, client, sync_settings, monkeypatch):
        monkeypatch.setattr(sync_settings, "airtable_token", "")
        monkeypatch.setattr(sync_settings, "airtable_base_id", "")

        response = await client.post("/sync")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_successful_sync(self, client, sync_settings, fake_airtable, tmp_path):
        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable

        response = await client.post("/sync")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["stats"]["projects"] == 1
        assert body["stats"]["journal"] == 1
        assert body["syncStats"]["mode"] == "full"
        assert response.headers["X-Sync-Mode"] == "full"
        assert (tmp_path / "portfolio-data-directing.json").exists()

    @pytest.mark.asyncio
    async def test_all_modes(self, client, sync_settings, fake_airtable):
        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable

        response = await client.post("/sync", params={"all_modes": "true"})
        body = response.json()

        assert set(body["portfolios"]) == {"directing", "postproduction"}
        assert body["portfolios"]["postproduction"]["projects"] == 0

    @pytest.mark.asyncio
    async def test_sync_uses_oembed_client(self, client, sync_settings, fake_airtable, airtable_tables, tmp_path):
        airtable_tables["Projects"][0]["fields"]["Video URL"] = "https://vimeo.com/gabath/longnight"

        async def oembed_client():
            def handler(request):
                return httpx.Response(200, json={"thumbnail_url": "https://i.vimeocdn.com/video/9.jpg"})

            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                yield http

        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable
        app.dependency_overrides[get_http_client] = oembed_client

        response = await client.post("/sync")

        assert response.status_code == 200
        saved = json.loads((tmp_path / "portfolio-data-directing.json").read_text(encoding="utf-8"))
        assert saved["projects"][0]["videoThumbnail"] == "https://i.vimeocdn.com/video/9.jpg"

    @pytest.mark.asyncio
    async def test_rate_limit_is_429(self, client, sync_settings, fake_airtable, monkeypatch):
        class RateLimitedSync:
            def __init__(self, *args, **kwargs):
                pass

            async def run(self, force_full=False):
                raise SyncError("Rate limit exceeded for Projects", stage="Init", is_rate_limit=True)

        monkeypatch.setattr(sync_router, "PortfolioSync", RateLimitedSync)
        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable

        response = await client.post("/sync")

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["retryable"] is True
        assert body["stage"] == "Init"

    @pytest.mark.asyncio
    async def test_other_failures_are_500(self, client, sync_settings, fake_airtable):
        fake_airtable.fetch_table.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_airtable_client] = lambda: fake_airtable

        response = await client.post("/sync")

        assert response.status_code == 500
        assert response.json()["retryable"] is False
        assert response.json()["error"] == "boom"


class TestSiteRoutes:

    @pytest.fixture
    def repository(self, portfolio_payload):
        repo = MagicMock()
        repo.get_data = AsyncMock(return_value=PortfolioData.model_validate(portfolio_payload))
        app.dependency_overrides[get_repository] = lambda: repo
        return repo

    @pytest.mark.asyncio
    async def test_sitemap(self, client, repository):
        response = await client.get("/sitemap.xml")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert "<loc>https://directedbygabriel.com/work/the-long-night</loc>" in response.text

    @pytest.mark.asyncio
    async def test_robots(self, client, repository):
        response = await client.get("/robots.txt")

        assert "Sitemap: https://directedbygabriel.com/sitemap.xml" in response.text
