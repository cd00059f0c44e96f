"""Tests for the character import provider."""

import json
from typing import Any

import pytest

from tabletop_mcp.ddb_provider import DdbProvider
from tabletop_mcp.errors import BadRequest, NotFound, UnknownTool
from tabletop_mcp.registry import ProviderKind
from tabletop_mcp.store import CharacterStore


@pytest.fixture
def provider(store: CharacterStore) -> DdbProvider:
    return DdbProvider(store)


class TestImport:
    def test_shape(self, provider: DdbProvider) -> None:
        assert provider.id == "ddb"
        assert provider.kind is ProviderKind.LOCAL_IMPORT
        assert [t.name for t in provider.tools] == [
            "ddb_import_character_json",
            "character_get_overview",
            "character_list_spells",
            "character_list_inventory",
            "character_export_markdown",
        ]

    async def test_import_lira(self, provider: DdbProvider, lira: dict[str, Any]) -> None:
        result = await provider.call_tool("ddb_import_character_json", {"json": lira, "id": "lira"})

        assert result["id"] == "lira"
        character = result["character"]
        assert character["identity"]["name"] == "Lira Swift"
        assert character["statCore"]["STR"] == 8
        assert character["statCore"]["mod"]["STR"] == -1
        assert character["combat"]["AC"] == 15
        assert len(character["spells"]) == 2
        assert character["slug"] == "lira-swift"

    async def test_id_from_character(self, provider: DdbProvider) -> None:
        result = await provider.call_tool(
            "ddb_import_character_json", {"json": {"id": 77, "name": "Kael"}}
        )
        assert result["id"] == "77"

    async def test_zero_id_kept(self, provider: DdbProvider, store: CharacterStore) -> None:
        result = await provider.call_tool(
            "ddb_import_character_json", {"json": {"id": 0, "name": "Zero"}}
        )

        assert result["id"] == "0"
        assert (await store.load("0")).identity.name == "Zero"

    async def test_explicit_id_wins(self, provider: DdbProvider) -> None:
        result = await provider.call_tool(
            "ddb_import_character_json", {"json": {"id": 77}, "id": "mine"}
        )
        assert result["id"] == "mine"

    async def test_generated_id(self, provider: DdbProvider, store: CharacterStore) -> None:
        result = await provider.call_tool("ddb_import_character_json", {"json": {"name": "Anon"}})

        assert result["id"]
        assert (await store.load(result["id"])).identity.name == "Anon"

    async def test_string_payload_parsed(self, provider: DdbProvider, lira: dict[str, Any]) -> None:
        result = await provider.call_tool(
            "ddb_import_character_json", {"json": json.dumps(lira), "id": "s"}
        )
        assert result["character"]["identity"]["name"] == "Lira Swift"

    @pytest.mark.parametrize(
        "args",
        [{}, {"json": None}, {"json": [1, 2]}, {"json": "{not json"}, {"json": "42"}],
    )
    async def test_bad_payload(self, provider: DdbProvider, args: dict[str, Any]) -> None:
        with pytest.raises(BadRequest):
            await provider.call_tool("ddb_import_character_json", args)


class TestViews:
    @pytest.fixture(autouse=True)
    async def imported(self, provider: DdbProvider, lira: dict[str, Any]) -> None:
        await provider.call_tool("ddb_import_character_json", {"json": lira, "id": "lira"})

    async def test_overview(self, provider: DdbProvider) -> None:
        overview = await provider.call_tool("character_get_overview", {"id": "lira"})

        assert overview == {
            "id": "lira",
            "name": "Lira Swift",
            "classes": [{"name": "Wizard", "level": 3}, {"name": "Rogue", "level": 1}],
            "level": [3, 1],
            "AC": 15,
            "hp": {"max": 24, "current": 21, "temp": 0},
        }

    async def test_spells(self, provider: DdbProvider) -> None:
        spells = await provider.call_tool("character_list_spells", {"id": "lira"})
        assert spells == [
            {"name": "Light", "level": 0, "prepared": True},
            {"name": "Mage Armor", "level": 1, "prepared": False},
        ]

    async def test_inventory(self, provider: DdbProvider) -> None:
        items = await provider.call_tool("character_list_inventory", {"id": "lira"})
        assert items[0] == {"name": "Dagger", "qty": 2, "attuned": False, "notes": ""}
        assert items[1]["attuned"] is True

    async def test_markdown(self, provider: DdbProvider) -> None:
        text = await provider.call_tool("character_export_markdown", {"id": "lira"})
        assert text.startswith("# Lira Swift\n")
        assert "- Light (lvl 0) [prepared]" in text

    async def test_unknown_character(self, provider: DdbProvider) -> None:
        with pytest.raises(NotFound):
            await provider.call_tool("character_get_overview", {"id": "nobody"})

    async def test_missing_id(self, provider: DdbProvider) -> None:
        with pytest.raises(BadRequest, match="id"):
            await provider.call_tool("character_list_spells", {})

    async def test_unknown_tool(self, provider: DdbProvider) -> None:
        with pytest.raises(UnknownTool):
            await provider.call_tool("character_delete", {"id": "lira"})
