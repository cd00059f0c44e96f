"""Shared fixtures for tabletop_mcp tests."""

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from tabletop_mcp.client import WikiClient
from tabletop_mcp.config import Settings
from tabletop_mcp.store import CharacterStore

BASE_URL = "http://test-wiki:8080/api/1.0"


@pytest.fixture
def lira() -> dict[str, Any]:
    """The character sheet used across import tests."""
    return {
        "name": "Lira Swift",
        "race": "Half-Elf",
        "classes": [{"name": "Wizard", "level": 3}, {"name": "Rogue", "level": 1}],
        "abilities": {"Strength": 8},
        "ac": 15,
        "hp": 21,
        "hp_max": 24,
        "spells": [
            {"name": "Light", "level": 0, "prepared": True},
            {"name": "Mage Armor", "level": 1},
        ],
        "items": [
            {"name": "Dagger", "qty": 2},
            {"name": "Cloak of Elvenkind", "attuned": True, "notes": "advantage on Stealth"},
        ],
    }


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create test settings without a default token."""
    return Settings(
        base_url=BASE_URL,
        api_token=None,
        timeout_seconds=5.0,
        data_dir=str(tmp_path / "characters"),
        session_grace_seconds=0.05,
        keepalive_seconds=0.05,
        stream_provider="kanka",
    )


@pytest.fixture
def settings_with_auth(settings: Settings) -> Settings:
    """Create test settings with a process-wide default token."""
    return settings.model_copy(update={"api_token": "default-token"})


@pytest.fixture
async def client(settings: Settings) -> AsyncIterator[WikiClient]:
    """Create test client, closed after the test."""
    wiki_client = WikiClient(settings)
    yield wiki_client
    await wiki_client.close()


@pytest.fixture
def store(settings: Settings) -> CharacterStore:
    return CharacterStore(settings.data_dir)
