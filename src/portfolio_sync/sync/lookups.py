"""Festival and client lookup maps used to resolve linked-record ids."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from ..airtable.records import CLIENTS_TABLE, FESTIVALS_TABLE, ClientRow, FestivalRow

if TYPE_CHECKING:
    from ..airtable.client import AirtableClient


@dataclass
class LookupMaps:
    festivals: dict[str, str] = field(default_factory=dict)
    clients: dict[str, str] = field(default_factory=dict)


def lookup_maps_from_records(
    festival_records: Iterable[dict],
    client_records: Iterable[dict],
) -> LookupMaps:
    festivals = {}
    for record in festival_records:
        row = FestivalRow.from_record(record)
        if row.id:
            festivals[row.id] = row.display_name

    clients = {}
    for record in client_records:
        row = ClientRow.from_record(record)
        if row.id:
            clients[row.id] = row.display_name

    return LookupMaps(festivals=festivals, clients=clients)


async def fetch_lookup_tables(client: "AirtableClient") -> tuple[list[dict], list[dict]]:
    """Fetch both lookup tables concurrently."""
    festivals, clients = await asyncio.gather(
        client.fetch_table(FESTIVALS_TABLE),
        client.fetch_table(CLIENTS_TABLE),
    )
    return festivals, clients


async def build_lookup_maps(client: "AirtableClient") -> LookupMaps:
    festivals, clients = await fetch_lookup_tables(client)
    return lookup_maps_from_records(festivals, clients)
