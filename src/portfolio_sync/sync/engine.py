"""Sync orchestrator - turns Airtable tables into the portfolio JSON artifact."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field

from ..airtable.client import AirtableError
from ..airtable.records import (
    ALL_TABLES,
    CLIENTS_TABLE,
    FESTIVALS_TABLE,
    JOURNAL_TABLE,
    PROJECTS_TABLE,
    SETTINGS_TABLE,
    SORT_FIELDS,
    RecordTimestamp,
)
from ..config import PORTFOLIO_MODES
from .builders import build_config, build_posts, build_projects
from .changes import TableChanges, check_for_changes, has_changes, merge_changed_records
from .lookups import fetch_lookup_tables, lookup_maps_from_records
from .models import CamelModel, JournalPost, PortfolioConfig, PortfolioData, Project

if TYPE_CHECKING:
    from ..airtable.client import AirtableClient

logger = logging.getLogger(__name__)

ARTIFACT_VERSION = "1.0"
ARTIFACT_SOURCE = "build-time-sync"


class SyncState(str, Enum):
    INIT = "Init"
    LOOKUP_MAPS_BUILT = "LookupMapsBuilt"
    CONFIG_BUILT = "ConfigBuilt"
    PROJECTS_BUILT = "ProjectsBuilt"
    JOURNAL_BUILT = "JournalBuilt"
    WRITTEN = "Written"
    SUCCESS = "Success"
    FAILED = "Failed"


class SyncStats(CamelModel):
    mode: str = "full"
    api_calls: int = 0
    new_records: int = 0
    changed_records: int = 0
    deleted_records: int = 0
    unchanged_records: int = 0


class SyncResult(BaseModel):
    success: bool = False
    state: SyncState = SyncState.INIT
    portfolio_mode: str = "directing"
    projects: list[Project] = []
    posts: list[JournalPost] = []
    config: PortfolioConfig | None = None
    errors: list[str] = []
    failed_stage: str | None = None
    is_rate_limit: bool = False
    timestamp: str = ""
    output_file: str | None = None
    stats: SyncStats = Field(default_factory=SyncStats)

    def to_portfolio_data(self) -> PortfolioData:
        return PortfolioData(
            projects=self.projects,
            posts=self.posts,
            config=self.config or PortfolioConfig.default(self.portfolio_mode),
            generated_at=self.timestamp,
            portfolio_mode=self.portfolio_mode,
        )


class SyncError(Exception):
    """A sync run failed; nothing was written.

    ``stage`` is the last state reached before the failure and
    ``is_rate_limit`` tells callers the upstream API asked us to back off.
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        is_rate_limit: bool = False,
        result: SyncResult | None = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.is_rate_limit = is_rate_limit
        self.result = result


def is_rate_limit_error(exc: BaseException) -> bool:
    if getattr(exc, "is_rate_limit", False):
        return True
    message = str(exc)
    return "Rate limit" in message or "429" in message


def _api_call_count(client: Any) -> int:
    calls = getattr(client, "api_calls", 0)
    return calls if isinstance(calls, int) else 0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class RecordSnapshot:
    """Raw records for every table plus the timestamps persisted for next run.

    ``changes`` is None after a full fetch.
    """

    records: dict[str, list[dict]]
    timestamps: dict[str, dict[str, str | None]]
    changes: dict[str, TableChanges] | None = None

    @property
    def unchanged(self) -> bool:
        return self.changes is not None and not has_changes(self.changes)


# ---------------------------------------------------------------------------
# Artifact I/O
# ---------------------------------------------------------------------------


def load_existing_data(path: str | Path) -> dict[str, Any] | None:
    """Previous artifact, or None when missing or unreadable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not load existing data from %s: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


def write_json_atomic(path: str | Path, payload: Any) -> Path:
    """Write pretty-printed JSON via a temp file and ``os.replace``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def strip_private_keys(value: Any) -> Any:
    """Drop every dict key starting with ``_``, at any depth."""
    if isinstance(value, dict):
        return {k: strip_private_keys(v) for k, v in value.items() if not str(k).startswith("_")}
    if isinstance(value, list):
        return [strip_private_keys(v) for v in value]
    return value


def build_artifact(result: SyncResult, snapshot: RecordSnapshot) -> dict[str, Any]:
    config = result.config or PortfolioConfig.default(result.portfolio_mode)
    return {
        "projects": strip_private_keys([p.to_json_dict() for p in result.projects]),
        "posts": strip_private_keys([p.to_json_dict() for p in result.posts]),
        "config": config.to_json_dict(),
        "generatedAt": result.timestamp,
        "portfolioMode": result.portfolio_mode,
        "lastUpdated": result.timestamp,
        "version": ARTIFACT_VERSION,
        "source": ARTIFACT_SOURCE,
        "_rawRecords": snapshot.records,
        "syncMetadata": {
            "lastSync": result.timestamp,
            "timestamps": snapshot.timestamps,
        },
    }


def artifact_path(output_dir: str | Path, mode: str) -> Path:
    return Path(output_dir) / f"portfolio-data-{mode}.json"


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


def can_sync_incrementally(existing: dict[str, Any] | None) -> bool:
    if not existing:
        return False
    metadata = existing.get("syncMetadata")
    return (
        isinstance(metadata, dict)
        and isinstance(metadata.get("timestamps"), dict)
        and isinstance(existing.get("_rawRecords"), dict)
    )


async def _fetch_settings(client: "AirtableClient") -> list[dict]:
    try:
        return await client.fetch_table(SETTINGS_TABLE)
    except AirtableError as exc:
        if exc.is_rate_limit:
            raise
        logger.warning("Settings table unavailable, using default config: %s", exc)
        return []


async def fetch_all_records(client: "AirtableClient") -> RecordSnapshot:
    """Full fetch of every table."""
    festivals, clients = await fetch_lookup_tables(client)
    settings_records = await _fetch_settings(client)
    projects = await client.fetch_table(PROJECTS_TABLE, SORT_FIELDS[PROJECTS_TABLE])
    journal = await client.fetch_table(JOURNAL_TABLE, SORT_FIELDS[JOURNAL_TABLE])

    records = {
        PROJECTS_TABLE: projects,
        JOURNAL_TABLE: journal,
        FESTIVALS_TABLE: festivals,
        CLIENTS_TABLE: clients,
        SETTINGS_TABLE: settings_records,
    }
    timestamps = {
        table: {ts.id: ts.last_modified for ts in map(RecordTimestamp.from_record, rows)}
        for table, rows in records.items()
    }
    return RecordSnapshot(records=records, timestamps=timestamps)


async def fetch_changed_records(client: "AirtableClient", existing: dict[str, Any]) -> RecordSnapshot:
    """Timestamp check on every table, then refetch only new and changed ids."""
    fetched_timestamps = await asyncio.gather(*(client.fetch_timestamps(t) for t in ALL_TABLES))
    current = dict(zip(ALL_TABLES, fetched_timestamps))
    previous = existing["syncMetadata"]["timestamps"]
    changes = check_for_changes(previous, current)
    timestamps = {table: {ts.id: ts.last_modified for ts in rows} for table, rows in current.items()}
    existing_records: dict[str, list[dict]] = existing.get("_rawRecords") or {}

    if not has_changes(changes):
        return RecordSnapshot(records=existing_records, timestamps=timestamps, changes=changes)

    for table, table_changes in changes.items():
        if table_changes.total:
            logger.info(
                "%s: %d new, %d changed, %d deleted",
                table,
                len(table_changes.new),
                len(table_changes.changed),
                len(table_changes.deleted),
            )

    tables = [t for t in ALL_TABLES if changes[t].refetch_ids]
    results = await asyncio.gather(
        *(client.fetch_records_by_id(t, changes[t].refetch_ids, SORT_FIELDS[t]) for t in tables)
    )
    merged = merge_changed_records(existing_records, dict(zip(tables, results)), changes)
    return RecordSnapshot(records=merged, timestamps=timestamps, changes=changes)


def rebase_snapshot(snapshot: RecordSnapshot, existing: dict[str, Any] | None) -> RecordSnapshot:
    """Same records, with changes measured against ``existing``'s own timestamps.

    Modes share one fetch but not one artifact; a mode whose file is older than
    the one the fetch was diffed against must not look unchanged.
    """
    if snapshot.changes is None:
        return snapshot
    if not can_sync_incrementally(existing):
        return RecordSnapshot(records=snapshot.records, timestamps=snapshot.timestamps)
    current = {
        table: [RecordTimestamp(record_id, last_modified) for record_id, last_modified in rows.items()]
        for table, rows in snapshot.timestamps.items()
    }
    changes = check_for_changes(existing["syncMetadata"]["timestamps"], current)
    return RecordSnapshot(records=snapshot.records, timestamps=snapshot.timestamps, changes=changes)


async def fetch_snapshot(
    client: "AirtableClient",
    existing: dict[str, Any] | None,
    force_full: bool = False,
) -> RecordSnapshot:
    if not force_full and can_sync_incrementally(existing):
        logger.info("Checking for changes (incremental mode)")
        return await fetch_changed_records(client, existing)
    logger.info("Fetching all tables (full mode)")
    return await fetch_all_records(client)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class PortfolioSync:
    """Runs one sync for a single portfolio mode.

    States advance ``Init -> LookupMapsBuilt -> ConfigBuilt -> ProjectsBuilt ->
    JournalBuilt -> Written -> Success``; any exception moves the result to
    ``Failed`` and is re-raised as :class:`SyncError` without writing.
    """

    def __init__(
        self,
        client: "AirtableClient",
        *,
        mode: str = "directing",
        output_dir: str | Path = "public",
        write_files: bool = True,
        http: httpx.AsyncClient | None = None,
    ):
        self.client = client
        self.mode = mode if mode in PORTFOLIO_MODES else "directing"
        self.output_dir = Path(output_dir)
        self.write_files = write_files
        self.http = http

    @property
    def output_file(self) -> Path:
        return artifact_path(self.output_dir, self.mode)

    def _api_calls(self) -> int:
        return _api_call_count(self.client)

    def new_result(self) -> SyncResult:
        return SyncResult(portfolio_mode=self.mode, timestamp=_now_iso())

    async def run(self, force_full: bool = False) -> SyncResult:
        result = self.new_result()
        calls_before = self._api_calls()
        logger.info("Starting %s sync", self.mode)

        try:
            existing = None if force_full else load_existing_data(self.output_file)
            snapshot = await fetch_snapshot(self.client, existing, force_full)
            await self.apply_snapshot(result, snapshot, existing)
        except SyncError:
            raise
        except Exception as exc:
            raise self.fail(result, exc) from exc
        finally:
            result.stats.api_calls = self._api_calls() - calls_before

        return result

    async def apply_snapshot(
        self,
        result: SyncResult,
        snapshot: RecordSnapshot,
        existing: dict[str, Any] | None,
    ) -> SyncResult:
        """Build (or reuse) portfolio data for this mode from fetched records."""
        if snapshot.changes is not None:
            result.stats.mode = "incremental"
            result.stats.new_records = sum(len(c.new) for c in snapshot.changes.values())
            result.stats.changed_records = sum(len(c.changed) for c in snapshot.changes.values())
            result.stats.deleted_records = sum(len(c.deleted) for c in snapshot.changes.values())

        if snapshot.unchanged and existing:
            return self._use_cached(result, existing, snapshot)

        await self.build(result, snapshot.records)
        if self.write_files:
            write_json_atomic(self.output_file, build_artifact(result, snapshot))
            result.output_file = str(self.output_file)
            self._advance(result, SyncState.WRITTEN)
            logger.info("Wrote %s (%s mode)", self.output_file, result.stats.mode)

        result.success = True
        self._advance(result, SyncState.SUCCESS)
        return result

    async def build(self, result: SyncResult, records: dict[str, list[dict]]) -> SyncResult:
        lookups = lookup_maps_from_records(records.get(FESTIVALS_TABLE, []), records.get(CLIENTS_TABLE, []))
        self._advance(result, SyncState.LOOKUP_MAPS_BUILT)

        result.config = build_config(records.get(SETTINGS_TABLE, []), self.mode)
        self._advance(result, SyncState.CONFIG_BUILT)

        result.projects = await build_projects(
            records.get(PROJECTS_TABLE, []), lookups, result.config, self.mode, http=self.http
        )
        logger.info("Processed %d projects", len(result.projects))
        self._advance(result, SyncState.PROJECTS_BUILT)

        if result.config.has_journal:
            result.posts = build_posts(records.get(JOURNAL_TABLE, []))
            logger.info("Processed %d journal posts", len(result.posts))
        else:
            result.posts = []
            logger.info("Skipped journal for %s (hasJournal=false)", self.mode)
        self._advance(result, SyncState.JOURNAL_BUILT)
        return result

    def _use_cached(self, result: SyncResult, existing: dict[str, Any], snapshot: RecordSnapshot) -> SyncResult:
        logger.info("No changes detected, using cached data")
        result.stats.mode = "cached"
        result.stats.unchanged_records = len(snapshot.timestamps.get(PROJECTS_TABLE, {})) + len(
            snapshot.timestamps.get(JOURNAL_TABLE, {})
        )
        result.projects = [Project.model_validate(p) for p in existing.get("projects") or []]
        result.posts = [JournalPost.model_validate(p) for p in existing.get("posts") or []]
        config = existing.get("config")
        result.config = (
            PortfolioConfig.model_validate(config) if isinstance(config, dict) else PortfolioConfig.default(self.mode)
        )
        result.success = True
        result.state = SyncState.SUCCESS
        return result

    def _advance(self, result: SyncResult, state: SyncState) -> None:
        logger.debug("%s sync: %s -> %s", self.mode, result.state.value, state.value)
        result.state = state

    def fail(self, result: SyncResult, exc: BaseException) -> SyncError:
        stage = result.state.value
        rate_limited = is_rate_limit_error(exc)
        message = str(exc) or exc.__class__.__name__

        result.state = SyncState.FAILED
        result.success = False
        result.failed_stage = stage
        result.is_rate_limit = rate_limited
        result.errors.append(message)

        if rate_limited:
            logger.error("%s sync rate limited after %s: %s", self.mode, stage, message)
        else:
            logger.error("%s sync failed after %s: %s", self.mode, stage, message)
        return SyncError(message, stage=stage, is_rate_limit=rate_limited, result=result)


async def sync_all_modes(
    client: "AirtableClient",
    output_dir: str | Path = "public",
    force_full: bool = False,
    *,
    write_files: bool = True,
    http: httpx.AsyncClient | None = None,
) -> dict[str, SyncResult]:
    """Fetch Airtable once and write one artifact per portfolio mode."""
    syncers = {
        mode: PortfolioSync(client, mode=mode, output_dir=output_dir, write_files=write_files, http=http)
        for mode in PORTFOLIO_MODES
    }
    existing = {
        mode: (None if force_full else load_existing_data(syncer.output_file)) for mode, syncer in syncers.items()
    }
    previous = next((data for data in existing.values() if can_sync_incrementally(data)), None)

    calls_before = _api_call_count(client)
    first = syncers[PORTFOLIO_MODES[0]]
    try:
        snapshot = await fetch_snapshot(client, previous, force_full)
    except Exception as exc:
        raise first.fail(first.new_result(), exc) from exc
    api_calls = _api_call_count(client) - calls_before

    results: dict[str, SyncResult] = {}
    for mode, syncer in syncers.items():
        logger.info("Processing portfolio: %s", mode)
        result = syncer.new_result()
        result.stats.api_calls = api_calls
        try:
            await syncer.apply_snapshot(result, rebase_snapshot(snapshot, existing[mode]), existing[mode])
        except Exception as exc:
            raise syncer.fail(result, exc) from exc
        results[mode] = result
    return results
