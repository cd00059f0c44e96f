"""Pydantic models for MCP tool arguments.

Tool arguments arrive with the camelCase names advertised in the tool
schemas; the models expose them under snake_case attribute names.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class AuthArgs(BaseModel):
    """Arguments shared by every wiki tool."""

    auth_token: str | None = Field(
        default=None,
        alias="authToken",
        description="Optional API token overriding the session/default one",
    )

    model_config = {"populate_by_name": True, "extra": "ignore"}


class CampaignArgs(AuthArgs):
    """Arguments for tools scoped to a campaign."""

    campaign_id: int = Field(
        ...,
        alias="campaignId",
        description="The campaign identifier",
    )


class ListEntitiesArgs(CampaignArgs):
    """Arguments for ``list_<plural>`` tools."""

    page: int | None = Field(
        default=None,
        description="Optional page number",
    )


class GetEntityArgs(CampaignArgs):
    """Arguments for ``get_<name>`` tools."""

    id: int = Field(
        ...,
        description="The entity identifier",
    )


class SearchArgs(CampaignArgs):
    """Arguments for the ``search`` tool."""

    q: str = Field(
        ...,
        min_length=1,
        description="Search query",
    )


class ImportCharacterArgs(BaseModel):
    """Arguments for ``ddb_import_character_json``."""

    payload: Any = Field(
        ...,
        alias="json",
        description="Character JSON object (or a JSON string) to import",
    )
    id: str | None = Field(
        default=None,
        description="Optional storage id overriding the character's own id",
    )

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}


class CharacterIdArgs(BaseModel):
    """Arguments for tools reading a stored character."""

    id: str = Field(
        ...,
        min_length=1,
        description="The stored character id",
    )

    model_config = {"coerce_numbers_to_str": True}


def format_validation_error(exc: ValidationError) -> str:
    """Turn a pydantic error into a short caller-facing message.

    Args:
        exc: The validation error raised for tool arguments.

    Returns:
        One line naming each offending argument.
    """
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "args"
        parts.append(f"{field}: {err.get('msg', 'invalid')}")
    return "Invalid arguments: " + "; ".join(parts)
