"""HTTP transport entrypoint for the tabletop MCP server.

Serves the plain JSON front door (``/providers``, ``/mcp``) and streaming
MCP sessions (``GET /sse`` plus ``POST /message/<sessionId>/``) from one
Starlette app run by uvicorn.
"""

import argparse
import json
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from sse_starlette import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send

from tabletop_mcp.client import WikiClient
from tabletop_mcp.config import Settings, get_settings
from tabletop_mcp.dispatch import ToolDispatcher, error_envelope
from tabletop_mcp.errors import BadRequest, NotFound, ToolError
from tabletop_mcp.mcp_app import build_registry, create_session_server
from tabletop_mcp.registry import CallContext, ProviderRegistry, discover_providers
from tabletop_mcp.streaming import SessionManager, run_session

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

MESSAGE_PATH = "/message"


def _error(exc: Exception) -> JSONResponse:
    status, body = error_envelope(exc)
    return JSONResponse(body, status_code=status)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise BadRequest("request body must be valid JSON") from e


def _bearer_context(request: Request) -> CallContext:
    """Per-request credential from an ``Authorization: Bearer`` header."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return CallContext(auth_token=token.strip())
    return CallContext()


def create_app(
    settings: Settings | None = None,
    registry: ProviderRegistry | None = None,
) -> Starlette:
    """Create the Starlette ASGI application.

    Args:
        settings: Settings to use; read from the environment when omitted.
        registry: Prebuilt registry; built-in and discovered providers when omitted.

    Returns:
        Configured Starlette application.
    """
    settings = settings or get_settings()
    client = WikiClient(settings)
    if registry is None:
        registry = build_registry(settings, client, extra_providers=discover_providers())
    dispatcher = ToolDispatcher(registry)
    sessions = SessionManager(
        grace_seconds=settings.session_grace_seconds, message_path=MESSAGE_PATH
    )
    # sse_starlette reads its ping interval from the class
    EventSourceResponse.DEFAULT_PING_INTERVAL = settings.keepalive_seconds

    async def health_check(_request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "healthy",
                "service": "tabletop_mcp",
                "wiki_url": settings.base_url,
                "providers": len(registry),
                "sessions": len(sessions),
            }
        )

    async def list_providers(_request: Request) -> JSONResponse:
        return JSONResponse(dispatcher.list_providers())

    async def provider_tools(request: Request) -> JSONResponse:
        try:
            tools = dispatcher.list_provider_tools(request.path_params["provider_id"])
        except ToolError as e:
            return _error(e)
        return JSONResponse([tool.model_dump(by_alias=True, exclude_none=True) for tool in tools])

    async def provider_call(request: Request) -> JSONResponse:
        try:
            body = await _json_body(request)
            if not isinstance(body, dict):
                raise BadRequest("request body must be an object")
        except ToolError as e:
            return _error(e)
        status, payload = await dispatcher.call_tool_envelope(
            request.path_params["provider_id"],
            body.get("name"),
            body.get("args"),
            _bearer_context(request),
        )
        return JSONResponse(payload, status_code=status)

    async def mcp_endpoint(request: Request) -> JSONResponse:
        try:
            body = await _json_body(request)
        except ToolError as e:
            return _error(e)
        status, payload = await dispatcher.handle_mcp_request(body)
        return JSONResponse(payload, status_code=status)

    async def handle_sse(request: Request) -> Response:
        """Open a streaming session bound to one provider.

        The MCP SDK transport writes straight to the ASGI ``send`` callable,
        so ``request._send`` is passed through. Returns an empty
        ``Response()`` once the client disconnects.
        """
        provider_id = request.query_params.get("provider") or settings.stream_provider
        if registry.get(provider_id) is None:
            return _error(NotFound("provider not found"))
        session = sessions.open(provider_id, token=request.query_params.get("token"))
        server = create_session_server(dispatcher, provider_id, session.context)
        try:
            await run_session(
                session, sessions, server, request.scope, request.receive, request._send
            )
        except Exception as e:
            logger.exception("Session %s failed: %s", session.session_id, e)
        return Response()

    async def handle_message(scope: Scope, receive: Receive, send: Send) -> None:
        """Route one posted protocol message to its session's transport."""
        session_id = scope.get("path_params", {}).get("session_id")
        try:
            session = sessions.get(session_id)
        except ToolError as e:
            await _error(e)(scope, receive, send)
            return
        if session.delivers:
            await session.transport.handle_post_message(scope, receive, send)
            return
        logger.info("Session %s is draining, dropping message", session_id)
        response = JSONResponse({"status": "accepted"}, status_code=202)
        await response(scope, receive, send)

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        logger.info("tabletop MCP server starting (HTTP transport)")
        logger.info("Providers: %s", json.dumps([p["id"] for p in registry.list()]))
        try:
            yield
        finally:
            sessions.shutdown()
            await client.close()
            logger.info("Server shutdown complete")

    app = Starlette(
        debug=False,
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route("/providers", list_providers, methods=["GET"]),
            Route("/providers/{provider_id}/tools", provider_tools, methods=["GET"]),
            Route("/providers/{provider_id}/call", provider_call, methods=["POST"]),
            Route("/mcp", mcp_endpoint, methods=["POST"]),
            Route("/sse", handle_sse, methods=["GET"]),
            Mount(f"{MESSAGE_PATH}/{{session_id}}", app=handle_message),
        ],
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.sessions = sessions

    return app


def parse_args() -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(description="tabletop MCP server with HTTP transport")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5000,
        help="Port to bind to (default: 5000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    return parser.parse_args()


def main() -> None:
    """Main entrypoint for HTTP transport."""
    args = parse_args()

    logger.info("Starting server on %s:%d", args.host, args.port)

    try:
        uvicorn.run(
            "tabletop_mcp.server_http:create_app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            factory=True,
            log_level="info",
        )
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.exception("Server failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
