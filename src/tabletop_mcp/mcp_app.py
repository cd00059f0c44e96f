"""MCP application wiring shared by the stdio and HTTP entrypoints.

Builds the provider registry and binds a single provider's tools onto an
MCP SDK ``Server`` for the transports the SDK drives (stdio, and one server
per SSE session).
"""

import logging
from typing import Any

from mcp.server import Server
from mcp.types import CallToolResult, Tool

from tabletop_mcp.client import WikiClient
from tabletop_mcp.config import Settings
from tabletop_mcp.ddb_provider import DdbProvider
from tabletop_mcp.dispatch import ToolDispatcher
from tabletop_mcp.registry import CallContext, Provider, ProviderRegistry
from tabletop_mcp.store import CharacterStore
from tabletop_mcp.wiki_provider import WikiProvider

logger = logging.getLogger(__name__)


def create_mcp_server(name: str = "tabletop_mcp") -> Server:
    """Create the MCP server.

    Args:
        name: Server name for identification.

    Returns:
        MCP Server instance.
    """
    return Server(name)


def build_registry(
    settings: Settings,
    client: WikiClient,
    extra_providers: list[Provider] | None = None,
) -> ProviderRegistry:
    """Register the built-in providers followed by any extra ones.

    Extra providers are registered last, so one reusing a built-in id
    replaces it.

    Raises:
        InvalidProvider: If any provider violates the registration contract.
    """
    registry = ProviderRegistry()
    registry.register(WikiProvider(settings, client))
    registry.register(DdbProvider(CharacterStore(settings.data_dir)))
    for provider in extra_providers or []:
        registry.register(provider)
    return registry


def register_tools(
    server: Server,
    dispatcher: ToolDispatcher,
    provider_id: str,
    context: CallContext | None = None,
) -> None:
    """Expose one provider's tools on the MCP server.

    Args:
        server: The MCP server to register tools on.
        dispatcher: Dispatcher holding the provider registry.
        provider_id: The provider this server is bound to.
        context: Per-session call context (credential override, session id).
    """
    context = context or CallContext()

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List the bound provider's tools."""
        return dispatcher.list_provider_tools(provider_id)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Handle tool calls.

        Provider errors come back as ``"Error: <message>"`` content with
        ``isError`` set, so a failing call never ends the session.
        """
        return await dispatcher.call_tool_content(provider_id, name, arguments, context)


def create_session_server(
    dispatcher: ToolDispatcher, provider_id: str, context: CallContext
) -> Server:
    """Build an MCP server for one streaming session.

    The session's credential is captured here and nowhere else, so servers
    for concurrent sessions never share a token.
    """
    server = create_mcp_server()
    register_tools(server, dispatcher, provider_id, context)
    return server


def setup_mcp_app(
    server: Server, settings: Settings, dispatcher: ToolDispatcher, provider_id: str | None = None
) -> None:
    """Set up the complete MCP application.

    Args:
        server: The MCP server to configure.
        settings: Application settings.
        dispatcher: Dispatcher holding the provider registry.
        provider_id: Provider to bind; defaults to ``settings.stream_provider``.
    """
    bound = provider_id or settings.stream_provider
    register_tools(server, dispatcher, bound)
    logger.info("MCP server bound to provider %s (wiki at %s)", bound, settings.base_url)
