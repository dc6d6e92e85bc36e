"""Shared test fixtures for the portfolio sync test suite."""

import copy

import pytest
from unittest.mock import MagicMock
from typing import Any

# Sample IDs used across tests
SAMPLE_BASE_ID = "appTEST123"
SAMPLE_TOKEN = "patTEST456"


# ============================================================================
# Mock Airtable Records
# ============================================================================

MOCK_SETTINGS_RECORD = {
    "id": "recSettings1",
    "fields": {
        "Portfolio ID": "directing",
        "Owner Name": "Gabriel Athanasiou",
        "Site Title": "Gabriel Athanasiou",
        "Domain": "directedbygabriel.com",
        "Has Journal": True,
        "Allowed Roles": ["Director"],
        "Bio": "Director based in London & Athens.",
        "Default OG Image": [{"id": "attOg", "url": "https://cdn.example.com/og.jpg"}],
        "Last Modified": "2024-05-01T10:00:00.000Z",
    },
}

MOCK_FESTIVAL_RECORD = {
    "id": "recFest1",
    "fields": {"Name": "Berlinale", "Last Modified": "2024-01-01T00:00:00.000Z"},
}

MOCK_CLIENT_RECORD = {
    "id": "recClient1",
    "fields": {"Company": "Acme Films", "Last Modified": "2024-01-01T00:00:00.000Z"},
}

MOCK_PROJECT_RECORD = {
    "id": "recProject1",
    "fields": {
        "Name": "the_long_night",
        "Release Date": "2023-09-14",
        "About": "A short film about a night shift.",
        "Project Type": "Short Film",
        "Role": ["Director"],
        "Credits (new)": "Producer: Jane Smith, Editor: Tom Lee",
        "Video URL": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "Gallery": [
            {
                "id": "attGallery1",
                "url": "https://cdn.example.com/still-1.jpg",
                "width": 1920,
                "height": 1080,
                "type": "image/jpeg",
            }
        ],
        "Festivals": ["recFest1"],
        "Production Company": ["recClient1"],
        "Display Status": "Featured",
        "Last Modified": "2024-05-02T10:00:00.000Z",
    },
}

MOCK_HIDDEN_PROJECT_RECORD = {
    "id": "recProject2",
    "fields": {
        "Name": "Secret Cut",
        "Release Date": "2024-01-10",
        "Project Type": "Commercial",
        "Role": ["Director"],
        "Display Status": "Hidden",
        "Last Modified": "2024-05-02T10:00:00.000Z",
    },
}

MOCK_JOURNAL_RECORD = {
    "id": "recPost1",
    "fields": {
        "Title": "On Set In Athens",
        "Date": "2024-03-01",
        "Status": "Published",
        "Content": "<p>Notes from the shoot.</p>",
        "Tags": ["Behind the scenes"],
        "Last Modified": "2024-05-03T10:00:00.000Z",
    },
}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def mock_response():
    """Factory fixture to create mock HTTP responses."""
    def _create_response(data: Any, status_code: int = 200):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = data
        return response
    return _create_response


@pytest.fixture
def airtable_client():
    """AirtableClient with explicit credentials; tests mock ``_client.get``."""
    from portfolio_sync.airtable.client import AirtableClient

    return AirtableClient(token=SAMPLE_TOKEN, base_id=SAMPLE_BASE_ID)


@pytest.fixture
def airtable_tables():
    """Raw records per table, as returned by ``fetch_table``."""
    return copy.deepcopy({
        "Projects": [MOCK_PROJECT_RECORD, MOCK_HIDDEN_PROJECT_RECORD],
        "Journal": [MOCK_JOURNAL_RECORD],
        "Festivals": [MOCK_FESTIVAL_RECORD],
        "Client Book": [MOCK_CLIENT_RECORD],
        "Settings": [MOCK_SETTINGS_RECORD],
    })


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture
def portfolio_payload():
    """A published portfolio-data JSON document."""
    return {
        "projects": [
            {
                "id": "recProject1",
                "slug": "the-long-night",
                "title": "The Long Night",
                "category": "Narrative",
                "year": "2023",
                "releaseDate": "2023-09-14",
                "description": "A short film about a night shift.",
                "heroImage": "https://cdn.example.com/still-1.jpg",
                "gallery": ["https://cdn.example.com/still-1.jpg"],
                "videoUrl": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                "credits": [{"role": "Director", "name": "Gabriel Athanasiou"}],
                "awards": ["Berlinale"],
                "productionCompany": "Acme Films",
                "isFeatured": True,
            },
            {
                "id": "recProject3",
                "slug": "summer-spot",
                "title": "Summer Spot",
                "category": "Commercial",
                "year": "2022",
                "client": "Fizz Co",
                "description": "",
                "gallery": [],
            },
        ],
        "posts": [
            {
                "id": "recPost1",
                "slug": "on-set-in-athens",
                "title": "On Set In Athens",
                "publishDate": "2024-03-01",
                "content": "<p>Notes from the shoot.</p>",
                "tags": ["Behind the scenes"],
                "coverImage": "https://cdn.example.com/cover.jpg",
            }
        ],
        "config": {
            "portfolioId": "directing",
            "domain": "directedbygabriel.com",
            "defaultOgImage": "https://cdn.example.com/og.jpg",
            "about": {"bio": "Director based in London & Athens.", "profileImage": ""},
        },
        "generatedAt": "2024-05-03T10:00:00Z",
        "portfolioMode": "directing",
    }
