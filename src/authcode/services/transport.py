"""HTTP transport contract and the default httpx implementation.

The flow services only ever talk to a ``Transport``. Each call resolves
exactly once: it returns an HttpResponse for any HTTP status, or raises
TransportError when no response was obtained.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from authcode.models.errors import TransportError
from authcode.models.http import HttpResponse

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def post(
        self, url: str, headers: list[tuple[str, str]], body: str
    ) -> HttpResponse:
        """Send a POST request with a pre-encoded body."""
        ...

    async def get(self, url: str, headers: list[tuple[str, str]]) -> HttpResponse:
        """Send a GET request."""
        ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    No retries. The timeout is the only policy applied here.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        """Initialize the transport.

        Args:
            timeout: HTTP request timeout in seconds
            client: Pre-built client to use instead of creating one
        """
        self.timeout = timeout
        self._http_client = client or httpx.AsyncClient(timeout=timeout)

    async def post(
        self, url: str, headers: list[tuple[str, str]], body: str
    ) -> HttpResponse:
        try:
            response = await self._http_client.post(
                url, headers=headers, content=body.encode("utf-8")
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"POST {url} failed: {e}")
            raise TransportError(f"HTTP POST failed: {e}") from e
        return self._to_http_response(response)

    async def get(self, url: str, headers: list[tuple[str, str]]) -> HttpResponse:
        try:
            response = await self._http_client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"GET {url} failed: {e}")
            raise TransportError(f"HTTP GET failed: {e}") from e
        return self._to_http_response(response)

    def _to_http_response(self, response: httpx.Response) -> HttpResponse:
        return HttpResponse(
            status=response.status_code,
            headers=list(response.headers.items()),
            body=response.text,
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
