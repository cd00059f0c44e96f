"""File-backed persistence for normalized characters.

One JSON file per character id; the existence of the file is the only
existence check, there is no index.
"""

import json
import logging
import re
from pathlib import Path

import aiofiles
import aiofiles.os

from tabletop_mcp.character import CharacterModel
from tabletop_mcp.errors import BadRequest, NotFound

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class CharacterStore:
    """Async id-keyed store of ``CharacterModel`` documents."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, character_id: str) -> Path:
        """Resolve the file for an id, rejecting ids that could escape the directory.

        Raises:
            BadRequest: If the id is empty or contains path characters.
        """
        if not isinstance(character_id, str) or not _ID_RE.match(character_id):
            raise BadRequest(f"Invalid character id: {character_id!r}")
        return self.data_dir / f"{character_id}.json"

    async def save(self, character_id: str, character: CharacterModel) -> str:
        """Write (or fully overwrite) a character.

        Returns:
            The storage locator (file path) of the written document.
        """
        path = self.path_for(character_id)
        await aiofiles.os.makedirs(self.data_dir, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(character.to_json(), indent=2, ensure_ascii=False))
        logger.debug("Saved character %s to %s", character_id, path)
        return str(path)

    async def load(self, character_id: str) -> CharacterModel:
        """Read a character back.

        Raises:
            NotFound: If no document exists for the id.
        """
        path = self.path_for(character_id)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                data = json.loads(await f.read())
        except FileNotFoundError as e:
            raise NotFound(f"character not found: {character_id}") from e
        return CharacterModel.model_validate(data)
