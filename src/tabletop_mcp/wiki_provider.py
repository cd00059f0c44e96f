"""Remote-CRUD provider over the campaign wiki REST API.

Every tool maps to exactly one authenticated GET. Response bodies are
returned untouched; no schema validation or re-shaping happens here.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.types import Tool
from pydantic import ValidationError

from tabletop_mcp.catalog import EntityKind, RouteAction, RouteTable
from tabletop_mcp.client import WikiClient, WikiClientError
from tabletop_mcp.config import Settings
from tabletop_mcp.errors import BadRequest, MissingCredential, UnknownTool, UpstreamFailure
from tabletop_mcp.models import (
    AuthArgs,
    GetEntityArgs,
    ListEntitiesArgs,
    SearchArgs,
    format_validation_error,
)
from tabletop_mcp.registry import CallContext, ProviderKind

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any], str | None], Awaitable[Any]]


class WikiProvider:
    """Kanka-style campaign wiki exposed as list/get/search tools."""

    kind = ProviderKind.REMOTE_CRUD

    def __init__(
        self,
        settings: Settings,
        client: WikiClient,
        routes: RouteTable | None = None,
        provider_id: str = "kanka",
    ) -> None:
        self.id = provider_id
        self.name = "Kanka campaign wiki"
        self.description = "Read campaigns and their entities from the Kanka REST API."
        self._settings = settings
        self._client = client
        self.routes = routes or RouteTable()
        self._handlers: dict[str, Handler] = self._build_handlers()

    @property
    def tools(self) -> list[Tool]:
        return list(self.routes.tools)

    def _build_handlers(self) -> dict[str, Handler]:
        """Bind one handler per route, closing over its entity kind."""
        handlers: dict[str, Handler] = {}
        for route in self.routes:
            if route.action is RouteAction.LIST_CAMPAIGNS:
                handler: Handler = self._list_campaigns
            elif route.action is RouteAction.SEARCH:
                handler = self._search
            elif route.action is RouteAction.LIST:
                handler = functools.partial(self._list_entities, route.kind)
            else:
                handler = functools.partial(self._get_entity, route.kind)
            handlers[route.tool_name.lower()] = handler
        return handlers

    def resolve_token(self, args: dict[str, Any], context: CallContext | None) -> str:
        """Pick the effective credential: per-call, then session, then default.

        Raises:
            MissingCredential: If none of the three is a non-empty string.
        """
        for candidate in (
            args.get("authToken"),
            context.auth_token if context else None,
            self._settings.api_token,
        ):
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        raise MissingCredential(
            "No API token: pass authToken, connect with ?token= or set KANKA_API_TOKEN"
        )

    async def call_tool(
        self, name: str, args: dict[str, Any], context: CallContext | None = None
    ) -> Any:
        """Run one wiki tool.

        Raises:
            UnknownTool: If the name matches no route.
            MissingCredential: If no token can be resolved.
            BadRequest: If required arguments are missing or malformed.
            UpstreamFailure: If the wiki API call fails.
        """
        handler = self._handlers.get(name.lower()) if isinstance(name, str) else None
        if handler is None:
            raise UnknownTool(name)

        args = args or {}
        token = self.resolve_token(args, context)
        logger.info("Wiki tool called: %s", name)
        try:
            return await handler(args, token)
        except ValidationError as e:
            raise BadRequest(format_validation_error(e)) from e
        except WikiClientError as e:
            error_msg = str(e)
            if e.request_id:
                error_msg += f" (request_id: {e.request_id})"
            logger.error("Tool %s failed: %s", name, error_msg)
            raise UpstreamFailure(error_msg, upstream_status=e.status_code) from e

    async def _get(self, path: str, token: str, params: dict[str, Any] | None = None) -> Any:
        return await self._client.request(path, "GET", params=params, token=token)

    async def _list_campaigns(self, args: dict[str, Any], token: str) -> Any:
        AuthArgs.model_validate(args)
        return await self._get("/campaigns", token)

    async def _search(self, args: dict[str, Any], token: str) -> Any:
        parsed = SearchArgs.model_validate(args)
        return await self._get(
            f"/campaigns/{parsed.campaign_id}/search", token, params={"q": parsed.q}
        )

    async def _list_entities(self, kind: EntityKind, args: dict[str, Any], token: str) -> Any:
        parsed = ListEntitiesArgs.model_validate(args)
        return await self._get(
            f"/campaigns/{parsed.campaign_id}/{kind.plural}",
            token,
            params={"page": parsed.page},
        )

    async def _get_entity(self, kind: EntityKind, args: dict[str, Any], token: str) -> Any:
        parsed = GetEntityArgs.model_validate(args)
        return await self._get(f"/campaigns/{parsed.campaign_id}/{kind.plural}/{parsed.id}", token)
