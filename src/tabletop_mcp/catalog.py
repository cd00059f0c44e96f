"""Entity catalog and the tool route table generated from it.

Each ``EntityKind`` yields a ``list_<plural>`` and a ``get_<name>`` tool.
Two fixed tools (``list_campaigns`` and ``search``) complete the set. The
``RouteTable`` is built once and maps tool names to routes in both
directions, so no per-call string parsing is needed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from mcp.types import Tool

LIST_PREFIX = "list_"
GET_PREFIX = "get_"
CAMPAIGNS = "campaigns"


class InvalidCatalog(ValueError):
    """Raised when entity kinds would produce ambiguous tool names."""


@dataclass(frozen=True)
class EntityKind:
    """A routable domain noun, e.g. ``Character`` / ``characters``."""

    name: str
    plural: str

    @property
    def key(self) -> str:
        return self.name.lower()


ENTITY_KINDS: tuple[EntityKind, ...] = (
    EntityKind("Character", "characters"),
    EntityKind("Location", "locations"),
    EntityKind("Family", "families"),
    EntityKind("Organisation", "organisations"),
    EntityKind("Item", "items"),
    EntityKind("Note", "notes"),
    EntityKind("Event", "events"),
    EntityKind("Calendar", "calendars"),
    EntityKind("Race", "races"),
    EntityKind("Quest", "quests"),
    EntityKind("Journal", "journals"),
    EntityKind("Tag", "tags"),
    EntityKind("Map", "maps"),
    EntityKind("Timeline", "timelines"),
    EntityKind("Ability", "abilities"),
    EntityKind("Creature", "creatures"),
)


class RouteAction(str, Enum):
    """What a tool does against the wiki API."""

    LIST_CAMPAIGNS = "list_campaigns"
    SEARCH = "search"
    LIST = "list"
    GET = "get"


FIXED_TOOLS = (RouteAction.LIST_CAMPAIGNS.value, RouteAction.SEARCH.value)


@dataclass(frozen=True)
class Route:
    """One entry of the route table."""

    tool_name: str
    action: RouteAction
    kind: EntityKind | None = None


def tool_name_for(action: RouteAction, kind: EntityKind | None = None) -> str:
    """Derive the tool name for an action, the inverse of ``RouteTable.resolve``."""
    if action is RouteAction.LIST:
        if kind is None:
            raise ValueError("list routes need an entity kind")
        return f"{LIST_PREFIX}{kind.plural}"
    if action is RouteAction.GET:
        if kind is None:
            raise ValueError("get routes need an entity kind")
        return f"{GET_PREFIX}{kind.key}"
    return action.value


def validate_catalog(kinds: Iterable[EntityKind]) -> None:
    """Reject catalogs whose derived tool names would be ambiguous.

    Raises:
        InvalidCatalog: On duplicate names or plurals, on nouns equal to
            ``campaigns``, or on any derived tool name colliding with another.
    """
    names: set[str] = set()
    plurals: set[str] = set()
    tool_names: set[str] = set(FIXED_TOOLS)
    for kind in kinds:
        if not kind.name or not kind.plural:
            raise InvalidCatalog(f"Entity kind needs a name and a plural: {kind!r}")
        plural = kind.plural.lower()
        if CAMPAIGNS in (kind.key, plural):
            raise InvalidCatalog(f"Entity kind collides with '{CAMPAIGNS}': {kind.name}")
        if kind.key in names:
            raise InvalidCatalog(f"Duplicate entity name: {kind.name}")
        if plural in plurals:
            raise InvalidCatalog(f"Duplicate entity plural: {kind.plural}")
        names.add(kind.key)
        plurals.add(plural)
        for action in (RouteAction.LIST, RouteAction.GET):
            tool = tool_name_for(action, kind).lower()
            if tool in tool_names:
                raise InvalidCatalog(f"Tool name collision: {tool}")
            tool_names.add(tool)


def _list_tool(kind: EntityKind) -> Tool:
    return Tool(
        name=tool_name_for(RouteAction.LIST, kind),
        description=f"List {kind.plural} of a campaign (paginated).",
        inputSchema={
            "type": "object",
            "properties": {
                "campaignId": {"type": "integer", "description": "The campaign identifier"},
                "page": {"type": "integer", "description": "Optional page number"},
                "authToken": {
                    "type": "string",
                    "description": "Optional API token overriding the session/default one",
                },
            },
            "required": ["campaignId"],
        },
    )


def _get_tool(kind: EntityKind) -> Tool:
    return Tool(
        name=tool_name_for(RouteAction.GET, kind),
        description=f"Get a single {kind.key} of a campaign by id.",
        inputSchema={
            "type": "object",
            "properties": {
                "campaignId": {"type": "integer", "description": "The campaign identifier"},
                "id": {"type": "integer", "description": f"The {kind.key} identifier"},
                "authToken": {
                    "type": "string",
                    "description": "Optional API token overriding the session/default one",
                },
            },
            "required": ["campaignId", "id"],
        },
    )


def _fixed_tools() -> list[Tool]:
    return [
        Tool(
            name=RouteAction.LIST_CAMPAIGNS.value,
            description="List the campaigns visible to the current token.",
            inputSchema={
                "type": "object",
                "properties": {
                    "authToken": {
                        "type": "string",
                        "description": "Optional API token overriding the session/default one",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name=RouteAction.SEARCH.value,
            description="Full-text search across the entities of a campaign.",
            inputSchema={
                "type": "object",
                "properties": {
                    "campaignId": {"type": "integer", "description": "The campaign identifier"},
                    "q": {"type": "string", "description": "Search query"},
                    "authToken": {
                        "type": "string",
                        "description": "Optional API token overriding the session/default one",
                    },
                },
                "required": ["campaignId", "q"],
            },
        ),
    ]


class RouteTable:
    """Precomputed, enumerable mapping between tool names and routes."""

    def __init__(self, kinds: Iterable[EntityKind] = ENTITY_KINDS) -> None:
        self.kinds = tuple(kinds)
        validate_catalog(self.kinds)

        self._routes: dict[str, Route] = {}
        for action in (RouteAction.LIST_CAMPAIGNS, RouteAction.SEARCH):
            self._add(Route(action.value, action))
        for kind in self.kinds:
            for action in (RouteAction.LIST, RouteAction.GET):
                self._add(Route(tool_name_for(action, kind), action, kind))

        self.tools: tuple[Tool, ...] = tuple(
            _fixed_tools()
            + [tool for kind in self.kinds for tool in (_list_tool(kind), _get_tool(kind))]
        )

    def _add(self, route: Route) -> None:
        self._routes[route.tool_name.lower()] = route

    def resolve(self, tool_name: str) -> Route | None:
        """Map a tool name back to its route, case-insensitively.

        Returns:
            The route, or ``None`` when the name matches nothing.
        """
        if not isinstance(tool_name, str):
            return None
        return self._routes.get(tool_name.lower())

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


validate_catalog(ENTITY_KINDS)
