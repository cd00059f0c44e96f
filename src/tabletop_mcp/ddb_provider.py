"""Local-import provider for D&D Beyond style character sheets.

Characters are pasted as JSON (no scraping), normalized into
``CharacterModel`` and kept in the file store. The remaining tools serve
views over stored characters.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.types import Tool
from pydantic import ValidationError

from tabletop_mcp.character import class_levels, normalize_character, render_markdown
from tabletop_mcp.errors import BadRequest, UnknownTool
from tabletop_mcp.models import CharacterIdArgs, ImportCharacterArgs, format_validation_error
from tabletop_mcp.registry import CallContext, ProviderKind
from tabletop_mcp.store import CharacterStore

logger = logging.getLogger(__name__)

_ID_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "The stored character id"},
    },
    "required": ["id"],
}

DDB_TOOLS = (
    Tool(
        name="ddb_import_character_json",
        description=(
            "Import a D&D Beyond (or similar) character JSON and normalize it. "
            "Returns the storage id and the normalized character."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "json": {"type": "object", "description": "The character JSON"},
                "id": {"type": "string", "description": "Optional storage id"},
            },
            "required": ["json"],
        },
    ),
    Tool(
        name="character_get_overview",
        description="Overview of a stored character: name, classes, level, AC, HP.",
        inputSchema=_ID_SCHEMA,
    ),
    Tool(
        name="character_list_spells",
        description="List the spells of a stored character.",
        inputSchema=_ID_SCHEMA,
    ),
    Tool(
        name="character_list_inventory",
        description="List the equipment of a stored character.",
        inputSchema=_ID_SCHEMA,
    ),
    Tool(
        name="character_export_markdown",
        description="Export a stored character as a markdown sheet.",
        inputSchema=_ID_SCHEMA,
    ),
)


class DdbProvider:
    """Character import/normalize provider backed by ``CharacterStore``."""

    kind = ProviderKind.LOCAL_IMPORT

    def __init__(self, store: CharacterStore, provider_id: str = "ddb") -> None:
        self.id = provider_id
        self.name = "D&D Beyond (JSON import)"
        self.description = (
            "Import characters from pasted JSON (no scraping) and normalize them "
            "into a CharacterModel."
        )
        self._store = store
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "ddb_import_character_json": self._import_character,
            "character_get_overview": self._get_overview,
            "character_list_spells": self._list_spells,
            "character_list_inventory": self._list_inventory,
            "character_export_markdown": self._export_markdown,
        }

    @property
    def tools(self) -> list[Tool]:
        return list(DDB_TOOLS)

    async def call_tool(
        self, name: str, args: dict[str, Any], context: CallContext | None = None
    ) -> Any:
        handler = self._handlers.get(name) if isinstance(name, str) else None
        if handler is None:
            raise UnknownTool(name)
        logger.info("Character tool called: %s", name)
        try:
            return await handler(args or {})
        except ValidationError as e:
            raise BadRequest(format_validation_error(e)) from e

    async def _import_character(self, args: dict[str, Any]) -> dict[str, Any]:
        parsed = ImportCharacterArgs.model_validate(args)
        payload = parsed.payload
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise BadRequest(f"args.json is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise BadRequest("args.json required (a character object)")

        character = normalize_character(payload)
        character_id = parsed.id if parsed.id not in (None, "") else character.identity.id
        if character_id is None:
            character_id = uuid.uuid4().hex
        character_id = str(character_id)
        await self._store.save(character_id, character)
        logger.info("Imported character %s (%s)", character_id, character.identity.name)
        return {"id": character_id, "character": character.to_json()}

    async def _get_overview(self, args: dict[str, Any]) -> dict[str, Any]:
        character_id = CharacterIdArgs.model_validate(args).id
        character = await self._store.load(character_id)
        return {
            "id": character_id,
            "name": character.identity.name,
            "classes": character.identity.classes,
            "level": class_levels(character),
            "AC": character.combat.ac,
            "hp": character.combat.hp.model_dump(),
        }

    async def _list_spells(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        character = await self._store.load(CharacterIdArgs.model_validate(args).id)
        return [spell.model_dump() for spell in character.spells]

    async def _list_inventory(self, args: dict[str, Any]) -> list[dict[str, Any]]:
        character = await self._store.load(CharacterIdArgs.model_validate(args).id)
        return [item.model_dump() for item in character.equipment]

    async def _export_markdown(self, args: dict[str, Any]) -> str:
        character = await self._store.load(CharacterIdArgs.model_validate(args).id)
        return render_markdown(character)
