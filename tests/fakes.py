"""In-memory providers shared by dispatch, streaming and HTTP tests."""

from typing import Any

from mcp.types import Tool

from tabletop_mcp.errors import UpstreamFailure
from tabletop_mcp.registry import CallContext, ProviderKind

_EMPTY_SCHEMA = {"type": "object", "properties": {}}


class EchoProvider:
    """Returns its inputs, including the credential it was handed."""

    kind = ProviderKind.LOCAL_IMPORT

    def __init__(self, provider_id: str = "echo", name: str = "Echo") -> None:
        self.id = provider_id
        self.name = name
        self.description = "Echoes arguments back"

    @property
    def tools(self) -> list[Tool]:
        return [Tool(name="echo", description="Echo args", inputSchema=_EMPTY_SCHEMA)]

    async def call_tool(
        self, name: str, args: dict[str, Any], context: CallContext | None = None
    ) -> Any:
        context = context or CallContext()
        return {
            "tool": name,
            "args": args,
            "token": context.auth_token,
            "session": context.session_id,
        }


class FailingProvider:
    """``explode`` fails like an upstream outage; ``crash`` fails unexpectedly."""

    kind = ProviderKind.REMOTE_CRUD

    def __init__(self) -> None:
        self.id = "failing"
        self.name = "Failing"
        self.description = "Always fails"

    @property
    def tools(self) -> list[Tool]:
        return [
            Tool(name="explode", description="Upstream failure", inputSchema=_EMPTY_SCHEMA),
            Tool(name="crash", description="Unexpected failure", inputSchema=_EMPTY_SCHEMA),
        ]

    async def call_tool(
        self, name: str, args: dict[str, Any], context: CallContext | None = None
    ) -> Any:
        if name == "explode":
            raise UpstreamFailure("HTTP 503: maintenance", upstream_status=503)
        raise RuntimeError("provider bug")
