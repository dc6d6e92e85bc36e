"""sitemap.xml and robots.txt served from published portfolio data."""

from __future__ import annotations

from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from ..cms import PortfolioRepository
from ..config import settings
from ..sync.sitemap import build_robots, build_sitemap

router = APIRouter(tags=["site"])


def get_repository(request: Request) -> PortfolioRepository:
    return request.app.state.repository


@router.get("/sitemap.xml")
async def sitemap(repo: PortfolioRepository = Depends(get_repository)):
    data = await repo.get_data()
    base_url = f"https://{data.config.domain}" if data.config.domain else settings.site_url
    return Response(
        build_sitemap(data, base_url),
        media_type="application/xml",
        headers={"cache-control": "public, max-age=3600"},
    )


@router.get("/robots.txt")
async def robots(repo: PortfolioRepository = Depends(get_repository)):
    data = await repo.get_data()
    domain = data.config.domain or urlsplit(settings.site_url).netloc
    return PlainTextResponse(build_robots(domain))
