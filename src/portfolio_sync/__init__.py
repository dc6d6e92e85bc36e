"""Airtable-to-JSON portfolio sync and edge meta rewriting."""

__version__ = "0.1.0"
