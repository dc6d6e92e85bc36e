"""Tests for the sync orchestrator: full, incremental and cached runs."""

import copy
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from portfolio_sync.airtable.client import AirtableError, AirtableRateLimitError
from portfolio_sync.airtable.records import RecordTimestamp
from portfolio_sync.sync.engine import (
    PortfolioSync,
    SyncError,
    SyncState,
    artifact_path,
    can_sync_incrementally,
    is_rate_limit_error,
    load_existing_data,
    strip_private_keys,
    sync_all_modes,
    write_json_atomic,
)


def make_client(tables, failures=None):
    """MagicMock Airtable client serving ``tables``; ``failures`` maps table -> exception."""
    failures = failures or {}
    client = MagicMock()
    client.api_calls = 0

    def _records(table):
        if table in failures:
            raise failures[table]
        return copy.deepcopy(tables.get(table, []))

    def _fetch_table(table, sort_field=None):
        return _records(table)

    def _fetch_timestamps(table):
        return [RecordTimestamp.from_record(r) for r in _records(table)]

    def _fetch_records_by_id(table, record_ids, sort_field=None):
        return [r for r in _records(table) if r["id"] in record_ids]

    client.fetch_table = AsyncMock(side_effect=_fetch_table)
    client.fetch_timestamps = AsyncMock(side_effect=_fetch_timestamps)
    client.fetch_records_by_id = AsyncMock(side_effect=_fetch_records_by_id)
    return client


class TestFullSync:

    @pytest.mark.asyncio
    async def test_hidden_project_is_excluded(self, airtable_tables, tmp_path):
        result = await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()

        assert result.success is True
        assert result.state == SyncState.SUCCESS
        assert [p.id for p in result.projects] == ["recProject1"]
        assert [p.slug for p in result.posts] == ["on-set-in-athens"]
        assert result.stats.mode == "full"

    @pytest.mark.asyncio
    async def test_writes_artifact_with_sync_metadata(self, airtable_tables, tmp_path):
        result = await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()

        path = tmp_path / "portfolio-data-directing.json"
        assert result.output_file == str(path)
        data = json.loads(path.read_text())
        assert set(data) >= {"projects", "posts", "config", "generatedAt", "syncMetadata", "_rawRecords"}
        assert data["portfolioMode"] == "directing"
        assert data["projects"][0]["slug"] == "the-long-night"
        assert data["projects"][0]["credits"][0] == {"role": "Director", "name": "Gabriel Athanasiou"}
        assert data["syncMetadata"]["timestamps"]["Projects"] == {
            "recProject1": "2024-05-02T10:00:00.000Z",
            "recProject2": "2024-05-02T10:00:00.000Z",
        }
        assert [r["id"] for r in data["_rawRecords"]["Festivals"]] == ["recFest1"]
        assert can_sync_incrementally(data)

    @pytest.mark.asyncio
    async def test_lookup_tables_fetched_and_sorts_requested(self, airtable_tables, tmp_path):
        client = make_client(airtable_tables)

        await PortfolioSync(client, output_dir=tmp_path).run()

        calls = {c.args[0]: c.args[1:] for c in client.fetch_table.call_args_list}
        assert calls["Projects"] == ("Release Date",)
        assert calls["Journal"] == ("Date",)
        assert "Festivals" in calls and "Client Book" in calls

    @pytest.mark.asyncio
    async def test_journal_skipped_when_disabled(self, airtable_tables, tmp_path):
        airtable_tables["Settings"] = [
            {"id": "recS", "fields": {"Portfolio ID": "directing", "Allowed Roles": ["Director"]}}
        ]

        result = await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()

        assert result.posts == []
        assert len(result.projects) == 1

    @pytest.mark.asyncio
    async def test_settings_error_falls_back_to_default_config(self, airtable_tables, tmp_path):
        client = make_client(airtable_tables, {"Settings": AirtableError("Failed to fetch Settings: 500", 500)})

        result = await PortfolioSync(client, output_dir=tmp_path, write_files=False).run()

        assert result.success is True
        assert result.config.portfolio_owner_name == "Gabriel Athanasiou"
        assert result.config.allowed_roles == []
        assert result.output_file is None
        assert not (tmp_path / "portfolio-data-directing.json").exists()


class TestSyncFailures:

    @pytest.mark.asyncio
    async def test_rate_limit_is_tagged_and_nothing_written(self, airtable_tables, tmp_path):
        client = make_client(
            airtable_tables, {"Projects": AirtableRateLimitError("Rate limit exceeded for Projects", 429)}
        )

        with pytest.raises(SyncError) as exc_info:
            await PortfolioSync(client, output_dir=tmp_path).run()

        error = exc_info.value
        assert error.is_rate_limit is True
        assert error.stage == "Init"
        assert error.result.state == SyncState.FAILED
        assert error.result.errors == ["Rate limit exceeded for Projects"]
        assert not (tmp_path / "portfolio-data-directing.json").exists()

    @pytest.mark.asyncio
    async def test_settings_rate_limit_is_not_swallowed(self, airtable_tables, tmp_path):
        client = make_client(airtable_tables, {"Settings": AirtableRateLimitError("Rate limit exceeded", 429)})

        with pytest.raises(SyncError) as exc_info:
            await PortfolioSync(client, output_dir=tmp_path).run()

        assert exc_info.value.is_rate_limit is True

    @pytest.mark.asyncio
    async def test_build_failure_reports_last_stage(self, airtable_tables, tmp_path, monkeypatch):
        from portfolio_sync.sync import engine

        def _boom(records):
            raise ValueError("bad journal")

        monkeypatch.setattr(engine, "build_posts", _boom)

        with pytest.raises(SyncError) as exc_info:
            await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()

        assert exc_info.value.stage == "ProjectsBuilt"
        assert exc_info.value.is_rate_limit is False
        assert not (tmp_path / "portfolio-data-directing.json").exists()

    def test_rate_limit_detection_from_message(self):
        assert is_rate_limit_error(RuntimeError("HTTP 429 from upstream"))
        assert is_rate_limit_error(AirtableRateLimitError("slow down"))
        assert not is_rate_limit_error(RuntimeError("boom"))


class TestIncrementalSync:

    @pytest.mark.asyncio
    async def test_no_changes_uses_cached_data(self, airtable_tables, tmp_path):
        await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()
        client = make_client(airtable_tables)

        result = await PortfolioSync(client, output_dir=tmp_path).run()

        assert result.stats.mode == "cached"
        assert result.stats.unchanged_records == 3
        assert [p.slug for p in result.projects] == ["the-long-night"]
        assert result.config.portfolio_owner_name == "Gabriel Athanasiou"
        client.fetch_table.assert_not_called()
        client.fetch_records_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_changed_record_is_refetched(self, airtable_tables, tmp_path):
        await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()
        project = airtable_tables["Projects"][0]
        project["fields"]["Name"] = "the_longest_night"
        project["fields"]["Last Modified"] = "2024-06-01T00:00:00.000Z"
        client = make_client(airtable_tables)

        result = await PortfolioSync(client, output_dir=tmp_path).run()

        assert result.stats.mode == "incremental"
        assert result.stats.changed_records == 1
        assert result.stats.new_records == 0
        assert [p.title for p in result.projects] == ["The Longest Night"]
        client.fetch_records_by_id.assert_awaited_once()
        assert client.fetch_records_by_id.call_args.args[:2] == ("Projects", ["recProject1"])

    @pytest.mark.asyncio
    async def test_deleted_post_disappears(self, airtable_tables, tmp_path):
        await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()
        airtable_tables["Journal"] = []

        result = await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()

        assert result.stats.deleted_records == 1
        assert result.posts == []
        saved = load_existing_data(tmp_path / "portfolio-data-directing.json")
        assert saved["_rawRecords"]["Journal"] == []

    @pytest.mark.asyncio
    async def test_settings_without_last_modified_are_refetched(self, airtable_tables, tmp_path):
        settings_fields = airtable_tables["Settings"][0]["fields"]
        del settings_fields["Last Modified"]
        await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()
        settings_fields["Bio"] = "Director based in Athens."
        client = make_client(airtable_tables)

        result = await PortfolioSync(client, output_dir=tmp_path).run()

        assert result.stats.mode == "incremental"
        assert result.stats.new_records == 1
        assert result.config.about.bio == "Director based in Athens."
        assert client.fetch_records_by_id.call_args.args[:2] == ("Settings", ["recSettings1"])

    @pytest.mark.asyncio
    async def test_force_skips_change_detection(self, airtable_tables, tmp_path):
        await PortfolioSync(make_client(airtable_tables), output_dir=tmp_path).run()
        client = make_client(airtable_tables)

        result = await PortfolioSync(client, output_dir=tmp_path).run(force_full=True)

        assert result.stats.mode == "full"
        client.fetch_timestamps.assert_not_called()


class TestSyncAllModes:

    @pytest.mark.asyncio
    async def test_writes_one_artifact_per_mode(self, airtable_tables, tmp_path):
        client = make_client(airtable_tables)

        results = await sync_all_modes(client, tmp_path)

        assert set(results) == {"directing", "postproduction"}
        assert len(results["directing"].projects) == 1
        # No project has a post-production display status.
        assert results["postproduction"].projects == []
        assert (tmp_path / "portfolio-data-directing.json").exists()
        assert (tmp_path / "portfolio-data-postproduction.json").exists()
        # Tables are fetched once for both modes.
        assert client.fetch_table.await_count == 5

    @pytest.mark.asyncio
    async def test_older_mode_artifact_is_rebuilt(self, airtable_tables, tmp_path):
        project = airtable_tables["Projects"][0]
        project["fields"]["Display Status (Post)"] = "Featured"
        await PortfolioSync(make_client(airtable_tables), mode="postproduction", output_dir=tmp_path).run()
        project["fields"]["Name"] = "renamed_film"
        project["fields"]["Last Modified"] = "2024-06-01T00:00:00.000Z"
        await PortfolioSync(make_client(airtable_tables), mode="directing", output_dir=tmp_path).run()

        results = await sync_all_modes(make_client(airtable_tables), tmp_path)

        assert results["directing"].stats.mode == "cached"
        assert results["postproduction"].stats.mode == "incremental"
        assert results["postproduction"].stats.changed_records == 1
        assert [p.title for p in results["postproduction"].projects] == ["Renamed Film"]
        saved = load_existing_data(tmp_path / "portfolio-data-postproduction.json")
        assert saved["projects"][0]["title"] == "Renamed Film"

    @pytest.mark.asyncio
    async def test_mode_without_artifact_gets_full_build(self, airtable_tables, tmp_path):
        await PortfolioSync(make_client(airtable_tables), mode="directing", output_dir=tmp_path).run()

        results = await sync_all_modes(make_client(airtable_tables), tmp_path)

        assert results["directing"].stats.mode == "cached"
        assert results["postproduction"].stats.mode == "full"
        assert (tmp_path / "portfolio-data-postproduction.json").exists()

    @pytest.mark.asyncio
    async def test_failure_raises_sync_error(self, airtable_tables, tmp_path):
        client = make_client(airtable_tables, {"Journal": AirtableRateLimitError("Rate limit exceeded", 429)})

        with pytest.raises(SyncError) as exc_info:
            await sync_all_modes(client, tmp_path)

        assert exc_info.value.is_rate_limit is True


class TestArtifactHelpers:

    def test_write_json_atomic_creates_directories(self, tmp_path):
        path = write_json_atomic(tmp_path / "nested" / "out.json", {"a": "é"})

        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "é"}
        assert [p.name for p in path.parent.iterdir()] == ["out.json"]

    def test_load_existing_data_tolerates_garbage(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")

        assert load_existing_data(bad) is None
        assert load_existing_data(tmp_path / "missing.json") is None

    def test_strip_private_keys(self):
        assert strip_private_keys({"a": 1, "_b": 2, "c": [{"_d": 3, "e": 4}]}) == {"a": 1, "c": [{"e": 4}]}

    def test_artifact_path(self, tmp_path):
        assert artifact_path(tmp_path, "postproduction") == tmp_path / "portfolio-data-postproduction.json"
