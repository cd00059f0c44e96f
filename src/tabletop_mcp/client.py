"""HTTP client wrapper for the campaign wiki REST API.

Provides an async HTTP client with lifecycle management and error
handling. Authentication is supplied per call, so one client instance is
safely shared by every session.
"""

import logging
from typing import Any

import httpx

from tabletop_mcp.config import Settings

logger = logging.getLogger(__name__)


class WikiClientError(Exception):
    """Base exception for wiki client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


class WikiClient:
    """Async HTTP client for the campaign wiki API.

    The underlying ``httpx.AsyncClient`` only carries the base URL and
    static headers; the Bearer token is attached to each request.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the client with settings.

        Args:
            settings: Application settings containing base URL and timeout.
        """
        self._settings = settings
        self._client: httpx.AsyncClient | None = None

    def _build_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": "tabletop_mcp/0.1.0",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized.

        Returns:
            The initialized async HTTP client.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url.rstrip("/"),
                headers=self._build_headers(),
                timeout=httpx.Timeout(self._settings.timeout_seconds),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _extract_request_id(self, response: httpx.Response) -> str | None:
        for header in ("X-Request-ID", "X-Request-Id", "Request-Id", "request-id"):
            if header in response.headers:
                return response.headers[header]
        return None

    def _log_response(
        self,
        method: str,
        path: str,
        response: httpx.Response,
        request_id: str | None,
    ) -> None:
        log_extra = {"status": response.status_code, "method": method, "path": path}
        if request_id:
            log_extra["request_id"] = request_id

        if response.is_success:
            logger.debug("HTTP request succeeded", extra=log_extra)
        else:
            logger.warning("HTTP request failed", extra=log_extra)

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> Any:
        """Make an HTTP request and return the parsed JSON body.

        Args:
            path: API path relative to the configured base URL.
            method: HTTP method (GET, POST, etc.).
            body: Optional JSON body.
            params: Optional query parameters; ``None`` values are dropped.
            token: Bearer token for this call only.

        Returns:
            Parsed JSON response, unmodified.

        Raises:
            WikiClientError: If the request fails or returns a non-2xx status.
        """
        client = await self._ensure_client()

        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            response = await client.request(
                method,
                path,
                params=query or None,
                json=body,
                headers=headers,
            )
            request_id = self._extract_request_id(response)
            self._log_response(method, path, response, request_id)

            if not response.is_success:
                error_msg = f"HTTP {response.status_code}: {response.text[:200]}"
                raise WikiClientError(
                    message=error_msg,
                    status_code=response.status_code,
                    request_id=request_id,
                )

            try:
                return response.json()
            except ValueError as e:
                raise WikiClientError(
                    message="Invalid JSON in response body",
                    status_code=response.status_code,
                    request_id=request_id,
                ) from e

        except httpx.RequestError as e:
            logger.error("HTTP request error: %s", e)
            raise WikiClientError(message=f"Request failed: {e}") from e
