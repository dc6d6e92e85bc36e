"""Manual sync trigger."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ..airtable.client import AirtableClient, AirtableConfigError
from ..config import settings
from ..sync.engine import PortfolioSync, SyncError, SyncResult, sync_all_modes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


def require_sync_token(request: Request) -> None:
    """Bearer check against PORTFOLIO_SYNC_TOKEN; open when unset."""
    token = settings.sync_token
    if not token:
        return
    provided = request.headers.get("authorization", "").strip()
    if not hmac.compare_digest(provided, f"Bearer {token}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


async def get_airtable_client() -> AsyncIterator[AirtableClient]:
    try:
        client = AirtableClient()
    except AirtableConfigError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    async with client:
        yield client


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Client for oEmbed thumbnail lookups during a sync."""
    async with httpx.AsyncClient(timeout=settings.oembed_timeout_seconds) as http:
        yield http


def _summary(result: SyncResult) -> dict:
    return {
        "projects": len(result.projects),
        "journal": len(result.posts),
        "timestamp": result.timestamp,
    }


@router.post("/sync", dependencies=[Depends(require_sync_token)])
async def trigger_sync(
    force: bool = False,
    all_modes: bool = False,
    client: AirtableClient = Depends(get_airtable_client),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    mode = settings.normalized_mode
    logger.info("Manual sync triggered (mode=%s, force=%s, all_modes=%s)", mode, force, all_modes)

    try:
        if all_modes:
            results = await sync_all_modes(client, settings.output_dir, force, http=http)
        else:
            syncer = PortfolioSync(client, mode=mode, output_dir=settings.output_dir, http=http)
            results = {mode: await syncer.run(force_full=force)}
    except SyncError as exc:
        status = 429 if exc.is_rate_limit else 500
        return JSONResponse(
            {
                "success": False,
                "error": str(exc),
                "stage": exc.stage,
                "retryable": exc.is_rate_limit,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            status_code=status,
        )

    primary = results.get(mode) or next(iter(results.values()))
    payload = {
        "success": True,
        "message": "Sync completed successfully",
        "stats": _summary(primary),
        "syncStats": primary.stats.to_json_dict(),
    }
    if all_modes:
        payload["portfolios"] = {
            name: {**_summary(result), "syncStats": result.stats.to_json_dict()} for name, result in results.items()
        }
    return JSONResponse(payload, headers={"X-Sync-Mode": primary.stats.mode})
