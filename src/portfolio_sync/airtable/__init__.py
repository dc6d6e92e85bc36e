"""Airtable access layer."""

from .client import (
    AirtableAuthError,
    AirtableClient,
    AirtableConfigError,
    AirtableError,
    AirtableRateLimitError,
)
from .records import (
    ALL_TABLES,
    CLIENTS_TABLE,
    FESTIVALS_TABLE,
    JOURNAL_TABLE,
    PROJECTS_TABLE,
    SETTINGS_TABLE,
    RecordTimestamp,
)

__all__ = [
    "AirtableClient",
    "AirtableError",
    "AirtableAuthError",
    "AirtableConfigError",
    "AirtableRateLimitError",
    "RecordTimestamp",
    "ALL_TABLES",
    "PROJECTS_TABLE",
    "JOURNAL_TABLE",
    "FESTIVALS_TABLE",
    "CLIENTS_TABLE",
    "SETTINGS_TABLE",
]
