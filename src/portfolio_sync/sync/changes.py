"""Change detection between two sync runs, keyed on Last Modified timestamps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..airtable.records import RecordTimestamp


@dataclass
class TableChanges:
    changed: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.changed) + len(self.new) + len(self.deleted)

    @property
    def refetch_ids(self) -> list[str]:
        return [*self.new, *self.changed]


def check_for_changes(
    previous: Mapping[str, Mapping[str, str | None]] | None,
    current: Mapping[str, Iterable[RecordTimestamp]],
) -> dict[str, TableChanges]:
    """Classify record ids per table as changed, new or deleted.

    ``previous`` is the ``{table: {record_id: last_modified}}`` snapshot from
    the last run; ``current`` holds this run's timestamps per table. Records
    stored without a timestamp are reported as new on every run.
    """
    previous = previous or {}
    changes: dict[str, TableChanges] = {}

    for table, timestamps in current.items():
        before = previous.get(table) or {}
        result = TableChanges()
        seen: set[str] = set()

        for ts in timestamps:
            seen.add(ts.id)
            # A missing or empty stored timestamp means we cannot tell; refetch.
            if not before.get(ts.id):
                result.new.append(ts.id)
            elif before[ts.id] != ts.last_modified:
                result.changed.append(ts.id)

        result.deleted = [record_id for record_id in before if record_id not in seen]
        changes[table] = result

    return changes


def has_changes(changes: Mapping[str, TableChanges]) -> bool:
    return any(c.total for c in changes.values())


def timestamp_snapshot(current: Mapping[str, Iterable[RecordTimestamp]]) -> dict[str, dict[str, str | None]]:
    """The ``{table: {id: last_modified}}`` map persisted for the next run."""
    return {table: {ts.id: ts.last_modified for ts in timestamps} for table, timestamps in current.items()}


def merge_changed_records(
    existing: Mapping[str, list[dict]],
    fetched: Mapping[str, list[dict]],
    changes: Mapping[str, TableChanges],
) -> dict[str, list[dict]]:
    """Apply refetched and deleted records to the previous raw record set."""
    merged: dict[str, list[dict]] = {table: list(records) for table, records in existing.items()}

    for table, table_changes in changes.items():
        refetched = fetched.get(table, [])
        drop = {r.get("id") for r in refetched} | set(table_changes.deleted)
        kept = [r for r in merged.get(table, []) if r.get("id") not in drop]
        merged[table] = kept + list(refetched)

    return merged
