"""FastAPI application for the portfolio service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cms import PortfolioRepository, TTLCache
from .config import settings
from .edge.middleware import MetaRewriteMiddleware
from .log import configure_logging

logger = logging.getLogger(__name__)


class SPAStaticFiles(StaticFiles):
    """Static files that fall back to index.html for client-side routes."""

    async def get_response(self, path: str, scope):
        try:
            response = await super().get_response(path, scope)
        except StarletteHTTPException as exc:
            if exc.status_code != 404:
                raise
            return await super().get_response("index.html", scope)
        if response.status_code == 404:
            return await super().get_response("index.html", scope)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    http = httpx.AsyncClient(timeout=settings.edge_fetch_timeout_seconds)
    app.state.repository = PortfolioRepository(
        http,
        mode=settings.normalized_mode,
        cdn_base_url=settings.cdn_base_url,
        local_base_url=settings.site_url,
        cache=TTLCache(settings.cache_ttl_seconds),
    )
    logger.info("Portfolio service started (mode=%s)", settings.normalized_mode)
    yield
    await http.aclose()


app = FastAPI(title="Portfolio Sync", lifespan=lifespan)

app.add_middleware(
    MetaRewriteMiddleware,
    mode=settings.normalized_mode,
    cdn_base_url=settings.cdn_base_url,
    timeout=settings.edge_fetch_timeout_seconds,
)

# Import and register routers
from .routers import health, site, sync  # noqa: E402

app.include_router(health.router)
app.include_router(sync.router)
app.include_router(site.router)

site_dir = Path(settings.site_dir)
if (site_dir / "index.html").is_file():
    app.mount("/", SPAStaticFiles(directory=str(site_dir), html=True), name="site")
else:
    logger.warning("Site directory %s has no index.html; serving API routes only", site_dir)
