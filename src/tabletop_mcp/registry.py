"""Provider contract and registry for tabletop_mcp.

A provider is a self-describing backend: an id, a display name, a tool
catalog and a uniform ``call_tool`` operation. Third-party packages can add
providers via entry_points:

    [project.entry-points."tabletop_mcp.providers"]
    my_provider = "my_package.provider:MyProvider"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from importlib.metadata import entry_points
from typing import Any, Protocol

from mcp.types import Tool

from tabletop_mcp.errors import InvalidProvider

logger = logging.getLogger(__name__)

PROVIDER_GROUP = "tabletop_mcp.providers"


class ProviderKind(str, Enum):
    """Closed set of provider variants."""

    REMOTE_CRUD = "remote_crud"
    LOCAL_IMPORT = "local_import"


@dataclass(frozen=True)
class CallContext:
    """Per-call state threaded from the request or session.

    The session credential lives here and nowhere else, so concurrent
    sessions never see each other's token.
    """

    auth_token: str | None = None
    session_id: str | None = None


class Provider(Protocol):
    """Interface every registered provider implements."""

    id: str
    name: str
    description: str
    kind: ProviderKind

    @property
    def tools(self) -> list[Tool]: ...

    async def call_tool(
        self, name: str, args: dict[str, Any], context: CallContext | None = None
    ) -> Any: ...


def validate_provider(provider: Any) -> None:
    """Check the registration contract.

    Raises:
        InvalidProvider: Unless the provider has a non-empty id and name and
            an invokable ``call_tool``.
    """
    if provider is None:
        raise InvalidProvider("Invalid provider shape: None")
    provider_id = getattr(provider, "id", None)
    if not isinstance(provider_id, str) or not provider_id:
        raise InvalidProvider("Provider must have a non-empty id")
    name = getattr(provider, "name", None)
    if not isinstance(name, str) or not name:
        raise InvalidProvider(f"Provider {provider_id} must have a non-empty name")
    if not callable(getattr(provider, "call_tool", None)):
        raise InvalidProvider(f"Provider {provider_id} must implement call_tool")


class ProviderRegistry:
    """id -> provider mapping, populated at startup and read-only afterwards."""

    def __init__(self, providers: Iterable[Provider] = ()) -> None:
        self._providers: dict[str, Provider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: Provider) -> None:
        """Register a provider.

        Registering an id that is already present replaces the earlier
        provider: the last registration wins. This lets a deployment shadow a
        built-in provider with its own implementation.

        Raises:
            InvalidProvider: If the provider violates the contract.
        """
        validate_provider(provider)
        if provider.id in self._providers:
            logger.warning("Provider %s re-registered, replacing previous entry", provider.id)
        self._providers[provider.id] = provider
        logger.info("Registered provider: %s (%s)", provider.id, provider.name)

    def list(self) -> list[dict[str, str]]:
        """Summaries of all providers, in registration order."""
        return [
            {
                "id": p.id,
                "name": p.name,
                "description": getattr(p, "description", "") or "",
            }
            for p in self._providers.values()
        ]

    def get(self, provider_id: str | None) -> Provider | None:
        """Look up a provider; a miss is ``None``, never an exception."""
        if not provider_id:
            return None
        return self._providers.get(provider_id)

    def providers(self) -> list[Provider]:
        return list(self._providers.values())

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)


def discover_providers() -> list[Provider]:
    """Discover and instantiate providers registered via entry_points.

    Providers that fail to load are logged and skipped; contract violations
    are left to ``ProviderRegistry.register``.
    """
    providers: list[Provider] = []
    for ep in entry_points(group=PROVIDER_GROUP):
        try:
            provider_cls = ep.load()
            provider = provider_cls()
        except Exception:
            logger.exception("Failed to load provider: %s", ep.name)
            continue
        logger.info("Discovered provider: %s (from %s)", getattr(provider, "id", "?"), ep.value)
        providers.append(provider)
    return providers
