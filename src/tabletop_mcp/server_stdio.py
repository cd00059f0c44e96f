"""stdio transport entrypoint for the tabletop MCP server.

Binds one provider (``TABLETOP_MCP_STREAM_PROVIDER``, or ``--provider``)
to an MCP server over stdio, suitable for Claude Desktop and similar tools.
"""

import argparse
import asyncio
import logging
import sys

from mcp.server.stdio import stdio_server

from tabletop_mcp.client import WikiClient
from tabletop_mcp.config import get_settings
from tabletop_mcp.dispatch import ToolDispatcher
from tabletop_mcp.mcp_app import build_registry, create_mcp_server, setup_mcp_app
from tabletop_mcp.registry import discover_providers

# Configure logging to stderr to avoid interfering with stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


async def run_server(provider_id: str | None = None) -> None:
    """Run the MCP server with stdio transport."""
    settings = get_settings()
    logger.info("Starting tabletop MCP server (stdio transport)")

    server = create_mcp_server()
    client = WikiClient(settings)
    registry = build_registry(settings, client, extra_providers=discover_providers())
    dispatcher = ToolDispatcher(registry)

    try:
        setup_mcp_app(server, settings, dispatcher, provider_id)

        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await client.close()
        logger.info("Server shutdown complete")


def main() -> None:
    """Main entrypoint for stdio transport."""
    parser = argparse.ArgumentParser(description="tabletop MCP server with stdio transport")
    parser.add_argument("--provider", help="Provider id to expose (default: from settings)")
    args = parser.parse_args()

    try:
        asyncio.run(run_server(args.provider))
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.exception("Server failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
