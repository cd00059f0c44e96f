"""Tests for the remote-CRUD wiki provider with mocked HTTP responses."""

import asyncio

import httpx
import pytest
import respx

from tabletop_mcp.client import WikiClient
from tabletop_mcp.config import Settings
from tabletop_mcp.errors import BadRequest, MissingCredential, UnknownTool, UpstreamFailure
from tabletop_mcp.registry import CallContext, ProviderKind
from tabletop_mcp.wiki_provider import WikiProvider

BASE_URL = "http://test-wiki:8080/api/1.0"


@pytest.fixture
def provider(settings: Settings, client: WikiClient) -> WikiProvider:
    return WikiProvider(settings, client)


@pytest.fixture
def provider_with_default(settings_with_auth: Settings, client: WikiClient) -> WikiProvider:
    return WikiProvider(settings_with_auth, client)


class TestRouting:
    def test_shape(self, provider: WikiProvider) -> None:
        assert provider.id == "kanka"
        assert provider.kind is ProviderKind.REMOTE_CRUD
        assert len(provider.tools) == 34

    @respx.mock
    async def test_get_character_issues_one_get(self, provider: WikiProvider) -> None:
        body = {"data": {"id": 9, "name": "Vex", "entry": "<p>rogue</p>"}}
        route = respx.get(f"{BASE_URL}/campaigns/5/characters/9").mock(
            return_value=httpx.Response(200, json=body)
        )

        result = await provider.call_tool(
            "get_character", {"campaignId": 5, "id": 9}, CallContext(auth_token="t")
        )

        assert result == body
        assert route.call_count == 1
        assert len(respx.calls) == 1
        assert route.calls.last.request.method == "GET"

    @respx.mock
    async def test_list_entities_with_page(self, provider: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns/5/locations").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        await provider.call_tool(
            "list_locations", {"campaignId": 5, "page": 2}, CallContext(auth_token="t")
        )

        assert route.calls.last.request.url.params["page"] == "2"

    @respx.mock
    async def test_list_entities_without_page(self, provider: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns/5/organisations").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        await provider.call_tool("list_organisations", {"campaignId": 5}, CallContext("t"))

        assert "page" not in route.calls.last.request.url.params

    @respx.mock
    async def test_list_campaigns(self, provider: WikiProvider) -> None:
        respx.get(f"{BASE_URL}/campaigns").mock(
            return_value=httpx.Response(200, json={"data": [{"id": 5}]})
        )

        result = await provider.call_tool("list_campaigns", {}, CallContext("t"))

        assert result == {"data": [{"id": 5}]}

    @respx.mock
    async def test_search(self, provider: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns/5/search").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        await provider.call_tool("search", {"campaignId": 5, "q": "dragon"}, CallContext("t"))

        assert route.calls.last.request.url.params["q"] == "dragon"

    @respx.mock
    async def test_case_insensitive_get(self, provider: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns/1/creatures/3").mock(
            return_value=httpx.Response(200, json={})
        )

        await provider.call_tool("get_Creature", {"campaignId": 1, "id": 3}, CallContext("t"))

        assert route.called

    @pytest.mark.parametrize("name", ["get_dragon", "delete_character", "list_", ""])
    async def test_unknown_tool(self, provider: WikiProvider, name: str) -> None:
        with pytest.raises(UnknownTool):
            await provider.call_tool(name, {}, CallContext("t"))


class TestArguments:
    async def test_search_requires_q(self, provider: WikiProvider) -> None:
        with pytest.raises(BadRequest, match="q"):
            await provider.call_tool("search", {"campaignId": 5}, CallContext("t"))

    async def test_search_requires_campaign(self, provider: WikiProvider) -> None:
        with pytest.raises(BadRequest, match="campaignId"):
            await provider.call_tool("search", {"q": "x"}, CallContext("t"))

    async def test_get_requires_id(self, provider: WikiProvider) -> None:
        with pytest.raises(BadRequest, match="id"):
            await provider.call_tool("get_note", {"campaignId": 5}, CallContext("t"))

    async def test_non_numeric_campaign(self, provider: WikiProvider) -> None:
        with pytest.raises(BadRequest):
            await provider.call_tool("list_notes", {"campaignId": "abc"}, CallContext("t"))


class TestCredentials:
    @respx.mock
    async def test_per_call_token_wins(self, provider_with_default: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns").mock(
            return_value=httpx.Response(200, json={})
        )

        await provider_with_default.call_tool(
            "list_campaigns", {"authToken": "per-call"}, CallContext(auth_token="session")
        )

        assert route.calls.last.request.headers["Authorization"] == "Bearer per-call"

    @respx.mock
    async def test_session_token_over_default(self, provider_with_default: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns").mock(
            return_value=httpx.Response(200, json={})
        )

        await provider_with_default.call_tool("list_campaigns", {}, CallContext("session"))

        assert route.calls.last.request.headers["Authorization"] == "Bearer session"

    @respx.mock
    async def test_default_token_fallback(self, provider_with_default: WikiProvider) -> None:
        route = respx.get(f"{BASE_URL}/campaigns").mock(
            return_value=httpx.Response(200, json={})
        )

        await provider_with_default.call_tool("list_campaigns", {"authToken": ""}, None)

        assert route.calls.last.request.headers["Authorization"] == "Bearer default-token"

    async def test_missing_credential(self, provider: WikiProvider) -> None:
        with pytest.raises(MissingCredential):
            await provider.call_tool("list_campaigns", {"authToken": "  "}, CallContext(""))

    @respx.mock
    async def test_concurrent_sessions_do_not_share_tokens(self, provider: WikiProvider) -> None:
        """Session A's token never satisfies session B's call."""
        seen: list[str] = []

        def reply(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={})

        respx.get(f"{BASE_URL}/campaigns").mock(side_effect=reply)

        results = await asyncio.gather(
            provider.call_tool("list_campaigns", {}, CallContext("token-a", "a")),
            provider.call_tool("list_campaigns", {}, CallContext(None, "b")),
            provider.call_tool("list_campaigns", {}, CallContext("token-c", "c")),
            return_exceptions=True,
        )

        assert results[0] == {}
        assert isinstance(results[1], MissingCredential)
        assert results[2] == {}
        assert sorted(seen) == ["Bearer token-a", "Bearer token-c"]


class TestUpstreamFailures:
    @respx.mock
    async def test_http_error_becomes_upstream_failure(self, provider: WikiProvider) -> None:
        respx.get(f"{BASE_URL}/campaigns/5/characters/404").mock(
            return_value=httpx.Response(404, json={"message": "No query results"})
        )

        with pytest.raises(UpstreamFailure) as exc_info:
            await provider.call_tool(
                "get_character", {"campaignId": 5, "id": 404}, CallContext("t")
            )

        assert exc_info.value.upstream_status == 404
        assert "HTTP 404" in exc_info.value.message
        assert not isinstance(exc_info.value.__cause__, httpx.HTTPError)

    @respx.mock
    async def test_transport_error_becomes_upstream_failure(self, provider: WikiProvider) -> None:
        respx.get(f"{BASE_URL}/campaigns").mock(side_effect=httpx.ConnectTimeout("slow"))

        with pytest.raises(UpstreamFailure, match="Request failed"):
            await provider.call_tool("list_campaigns", {}, CallContext("t"))
