"""Portfolio sync pipeline.

Usage:
    from portfolio_sync.airtable import AirtableClient
    from portfolio_sync.sync import PortfolioSync

    async with AirtableClient() as client:
        result = await PortfolioSync(client, mode="directing").run()
        print(result.stats.mode, len(result.projects))
"""

from .engine import (
    PortfolioSync,
    RecordSnapshot,
    SyncError,
    SyncResult,
    SyncState,
    SyncStats,
    load_existing_data,
    sync_all_modes,
)
from .models import JournalPost, PortfolioConfig, PortfolioData, Project
from .share_meta import build_share_manifest, write_share_manifest
from .sitemap import build_robots, build_sitemap

__all__ = [
    "PortfolioSync",
    "RecordSnapshot",
    "SyncError",
    "SyncResult",
    "SyncState",
    "SyncStats",
    "load_existing_data",
    "sync_all_modes",
    "JournalPost",
    "PortfolioConfig",
    "PortfolioData",
    "Project",
    "build_share_manifest",
    "write_share_manifest",
    "build_robots",
    "build_sitemap",
]
