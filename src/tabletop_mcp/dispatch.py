"""Tool dispatch over the provider registry.

The dispatcher resolves a provider, invokes the tool and wraps the outcome
in one of two protocol envelopes:

* HTTP mode: ``{"result": ...}`` or ``{"error": message}`` plus a status code.
* Streaming mode: an MCP ``CallToolResult`` with text content and ``isError``.

Provider errors never escape either envelope.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.types import CallToolResult, TextContent, Tool

from tabletop_mcp.errors import BadRequest, NotFound, ToolError
from tabletop_mcp.registry import CallContext, Provider, ProviderRegistry

logger = logging.getLogger(__name__)

LIST_TOOLS_REQUEST = "ListToolsRequest"
CALL_TOOL_REQUEST = "CallToolRequest"


def format_text(data: Any) -> str:
    """Render a tool result as text: strings as-is, anything else as JSON."""
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, default=str)


def format_json_response(data: Any) -> list[TextContent]:
    """Format raw data as MCP TextContent.

    Args:
        data: The data to format.

    Returns:
        List containing a single TextContent.
    """
    return [TextContent(type="text", text=format_text(data))]


def format_error(error: str) -> CallToolResult:
    """Format an error message as an MCP tool error result."""
    return CallToolResult(
        content=[TextContent(type="text", text=f"Error: {error}")],
        isError=True,
    )


def error_envelope(exc: Exception) -> tuple[int, dict[str, str]]:
    """Map an exception to an HTTP status and ``{"error": ...}`` body."""
    if isinstance(exc, ToolError):
        return exc.status_code, {"error": exc.message}
    return 500, {"error": f"Internal error: {exc}"}


class ToolDispatcher:
    """Routes ListTools/CallTool requests to registered providers."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self.registry = registry

    def list_providers(self) -> list[dict[str, str]]:
        return self.registry.list()

    def _provider(self, provider_id: str | None) -> Provider:
        if not provider_id:
            raise BadRequest("providerId required")
        provider = self.registry.get(provider_id)
        if provider is None:
            raise NotFound("provider not found")
        return provider

    def list_tools(self) -> list[dict[str, Any]]:
        """Union of every provider's tools, tagged with the owning provider."""
        tools: list[dict[str, Any]] = []
        for provider in self.registry.providers():
            for tool in provider.tools:
                tools.append(
                    {
                        "providerId": provider.id,
                        "providerName": provider.name,
                        "name": tool.name,
                        "description": tool.description,
                        "inputSchema": tool.inputSchema,
                    }
                )
        return tools

    def list_provider_tools(self, provider_id: str) -> list[Tool]:
        """One provider's own tool list, unmodified.

        Raises:
            NotFound: If the provider is not registered.
        """
        return list(self._provider(provider_id).tools)

    async def call_tool(
        self,
        provider_id: str | None,
        name: str | None,
        args: dict[str, Any] | None = None,
        context: CallContext | None = None,
    ) -> Any:
        """Invoke a tool and return its raw result.

        Raises:
            BadRequest: If ``providerId`` or ``name`` is missing, or ``args``
                is not an object.
            NotFound: If the provider is not registered.
            ToolError: Whatever the provider raises.
        """
        provider = self._provider(provider_id)
        if not name or not isinstance(name, str):
            raise BadRequest("name required")
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise BadRequest("args must be an object")
        logger.info("Tool called: %s/%s", provider.id, name)
        return await provider.call_tool(name, args, context)

    async def call_tool_envelope(
        self,
        provider_id: str | None,
        name: str | None,
        args: dict[str, Any] | None = None,
        context: CallContext | None = None,
    ) -> tuple[int, dict[str, Any]]:
        """HTTP-mode call: ``(200, {"result": ...})`` or an error envelope."""
        try:
            result = await self.call_tool(provider_id, name, args, context)
        except ToolError as e:
            logger.warning("Tool %s/%s failed: %s", provider_id, name, e.message)
            return error_envelope(e)
        except Exception as e:
            logger.exception("Unexpected error in tool %s/%s", provider_id, name)
            return error_envelope(e)
        return 200, {"result": result}

    async def call_tool_content(
        self,
        provider_id: str,
        name: str | None,
        args: dict[str, Any] | None = None,
        context: CallContext | None = None,
    ) -> CallToolResult:
        """Streaming-mode call; errors become ``isError`` text content."""
        try:
            result = await self.call_tool(provider_id, name, args, context)
        except ToolError as e:
            logger.warning("Tool %s/%s failed: %s", provider_id, name, e.message)
            return format_error(e.message)
        except Exception as e:
            logger.exception("Unexpected error in tool %s/%s", provider_id, name)
            return format_error(f"Internal error: {e}")
        return CallToolResult(content=format_json_response(result), isError=False)

    async def handle_mcp_request(self, body: Any) -> tuple[int, dict[str, Any]]:
        """Serve the generic ``POST /mcp`` front door.

        Understands ``{"type": "ListToolsRequest"}`` and
        ``{"type": "CallToolRequest", "providerId", "name", "args"}``.
        """
        if not isinstance(body, dict):
            return error_envelope(BadRequest("request body must be an object"))
        request_type = body.get("type")
        if request_type == LIST_TOOLS_REQUEST:
            return 200, {"tools": self.list_tools()}
        if request_type == CALL_TOOL_REQUEST:
            return await self.call_tool_envelope(
                body.get("providerId"), body.get("name"), body.get("args")
            )
        return error_envelope(BadRequest("unknown request type"))
