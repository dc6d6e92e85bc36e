"""Airtable API client - paginated table reads for the sync pipeline."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..config import settings
from .records import RecordTimestamp

logger = logging.getLogger(__name__)

LAST_MODIFIED_FIELD = "Last Modified"


class AirtableError(Exception):
    """Base exception for Airtable API errors."""

    is_rate_limit = False

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: dict | None = None,
        table: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.table = table
        super().__init__(self.message)


class AirtableAuthError(AirtableError):
    """Authentication error."""

    pass


class AirtableConfigError(AirtableAuthError):
    """Credentials missing from configuration."""

    pass


class AirtableRateLimitError(AirtableError):
    """Rate limit exceeded. Callers decide on backoff."""

    is_rate_limit = True


def _safe_json(response: httpx.Response) -> dict | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _sort_params(sort_field: str | None) -> dict[str, str]:
    if not sort_field:
        return {}
    return {"sort[0][field]": sort_field, "sort[0][direction]": "desc"}


def record_id_formula(record_ids: list[str]) -> str:
    """Build an OR(RECORD_ID()='..', ...) filter formula."""
    conditions = ",".join(f"RECORD_ID()='{record_id}'" for record_id in record_ids)
    return f"OR({conditions})"


class AirtableClient:
    """Read-only Airtable client with offset pagination.

    Usage:
        async with AirtableClient() as airtable:
            records = await airtable.fetch_table("Projects", sort_field="Release Date")
    """

    def __init__(
        self,
        token: str | None = None,
        base_id: str | None = None,
        *,
        api_url: str | None = None,
        timeout: float | None = None,
    ):
        self.token = token or settings.airtable_token
        self.base_id = base_id or settings.airtable_base_id

        if not self.token or not self.base_id:
            raise AirtableConfigError(
                "Missing Airtable credentials. Set PORTFOLIO_AIRTABLE_TOKEN and PORTFOLIO_AIRTABLE_BASE_ID"
            )

        self.api_url = (api_url or settings.airtable_api_url).rstrip("/")
        self.api_calls = 0

        self._client = httpx.AsyncClient(
            base_url=f"{self.api_url}/{self.base_id}",
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=timeout or settings.airtable_timeout_seconds,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _get_page(self, table: str, params: dict[str, Any]) -> dict[str, Any]:
        self.api_calls += 1
        response = await self._client.get(f"/{quote(table, safe='')}", params=params)

        if response.status_code == 429:
            raise AirtableRateLimitError(
                f"Rate limit exceeded for {table}",
                429,
                _safe_json(response),
                table=table,
            )

        if response.status_code in (401, 403):
            raise AirtableAuthError(
                f"Airtable rejected credentials for {table}: {response.status_code}",
                response.status_code,
                _safe_json(response),
                table=table,
            )

        if response.status_code >= 400:
            raise AirtableError(
                f"Failed to fetch {table}: {response.status_code}",
                response.status_code,
                _safe_json(response),
                table=table,
            )

        return response.json() or {}

    async def _paginate(self, table: str, params: dict[str, Any]) -> list[dict]:
        records: list[dict] = []
        offset: str | None = None

        while True:
            page_params = dict(params)
            if offset:
                page_params["offset"] = offset

            data = await self._get_page(table, page_params)
            batch = data.get("records") or []
            records.extend(r for r in batch if isinstance(r, dict))

            next_offset = data.get("offset")
            if not isinstance(next_offset, str) or not next_offset or next_offset == offset:
                break
            offset = next_offset

        logger.debug("Fetched %d records from %s", len(records), table)
        return records

    async def fetch_table(self, table: str, sort_field: str | None = None) -> list[dict]:
        """Fetch every record in a table, newest first when a sort field is given."""
        return await self._paginate(table, _sort_params(sort_field))

    async def fetch_timestamps(self, table: str) -> list[RecordTimestamp]:
        """Fetch only record ids and their Last Modified values."""
        records = await self._paginate(table, {"fields[]": LAST_MODIFIED_FIELD})
        return [RecordTimestamp.from_record(r) for r in records if r.get("id")]

    async def fetch_records_by_id(
        self,
        table: str,
        record_ids: list[str],
        sort_field: str | None = None,
    ) -> list[dict]:
        """Fetch just the listed records via filterByFormula."""
        if not record_ids:
            return []
        params = {"filterByFormula": record_id_formula(record_ids)}
        params.update(_sort_params(sort_field))
        return await self._paginate(table, params)
