"""Health and readiness checks for the portfolio service."""

from __future__ import annotations

from fastapi import APIRouter

from ..config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "portfolio", "mode": settings.normalized_mode}


@router.get("/ready")
async def readiness_check():
    return {
        "status": "ready",
        "service": "portfolio",
        "airtable_configured": settings.airtable_configured,
    }
