"""Tests for the TTL cache and the published-data repository."""

import httpx
import pytest

from portfolio_sync.cms import PortfolioRepository, TTLCache

CDN = "https://cdn.example.com/portfolio-static"
LOCAL = "https://directedbygabriel.com"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def make_repo(handler, clock, ttl=300):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PortfolioRepository(
        http,
        mode="directing",
        cdn_base_url=CDN,
        local_base_url=LOCAL,
        cache=TTLCache(ttl, clock=clock),
    )


class TestTTLCache:

    def test_fresh_then_expired(self, clock):
        cache = TTLCache(60, clock=clock)
        cache.set("value")

        assert cache.get() == "value"
        assert cache.is_fresh

        clock.now += 61
        assert cache.get() is None
        assert cache.get(allow_stale=True) == "value"
        assert not cache.is_fresh

    def test_empty_and_clear(self, clock):
        cache = TTLCache(60, clock=clock)
        assert cache.get(allow_stale=True) is None

        cache.set("value")
        cache.clear()
        assert cache.get(allow_stale=True) is None


class TestPortfolioRepository:

    @pytest.mark.asyncio
    async def test_loads_from_cdn_and_caches(self, clock, portfolio_payload):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, json=portfolio_payload)

        repo = make_repo(handler, clock)

        first = await repo.get_data()
        second = await repo.get_data()

        assert [p.slug for p in first.projects] == ["the-long-night", "summer-spot"]
        assert second is first
        assert requested == [f"{CDN}/portfolio-data-directing.json"]

    @pytest.mark.asyncio
    async def test_falls_back_to_local_copy(self, clock, portfolio_payload):
        def handler(request):
            if request.url.host == "cdn.example.com":
                return httpx.Response(502)
            return httpx.Response(200, json=portfolio_payload)

        data = await make_repo(handler, clock).get_data()

        assert data.config.domain == "directedbygabriel.com"

    @pytest.mark.asyncio
    async def test_refetches_after_ttl(self, clock, portfolio_payload):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json=portfolio_payload)

        repo = make_repo(handler, clock, ttl=10)
        await repo.get_data()
        clock.now += 11
        await repo.get_data()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_serves_stale_data_when_sources_fail(self, clock, portfolio_payload):
        state = {"up": True}

        def handler(request):
            if state["up"]:
                return httpx.Response(200, json=portfolio_payload)
            raise httpx.ConnectError("down", request=request)

        repo = make_repo(handler, clock, ttl=10)
        fresh = await repo.get_data()
        state["up"] = False
        clock.now += 60

        assert await repo.get_data() is fresh

    @pytest.mark.asyncio
    async def test_empty_default_when_nothing_available(self, clock):
        def handler(request):
            return httpx.Response(200, json={"projects": "not a list"})

        data = await make_repo(handler, clock).get_data()

        assert data.projects == []
        assert data.portfolio_mode == "directing"
        assert data.config.portfolio_owner_name == "Gabriel Athanasiou"
