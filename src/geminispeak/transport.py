"""HTTP transport used to reach the Gemini REST API.

The library only depends on the :class:`HttpClient` protocol; :class:`HttpxClient`
is the default implementation backed by ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from geminispeak.constants import DEFAULT_TIMEOUT_SECONDS
from geminispeak.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Outcome of a completed HTTP exchange, whatever its status."""

    status_code: int
    headers: Dict[str, List[str]] = field(default_factory=dict)
    json_body: Optional[Any] = None
    raw_body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class HttpClient(Protocol):
    """Capability to POST a JSON body and get the response back."""

    async def post(
        self, url: str, headers: Dict[str, str], json_body: Dict[str, Any]
    ) -> HttpResponse: ...


class HttpxClient:
    """HttpClient backed by httpx.

    Non-2xx statuses are returned, not raised. Connection failures and
    timeouts become :class:`TransportError`.
    """

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds, None disables it
            client: Pre-built AsyncClient to use instead of creating one
        """
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def post(
        self, url: str, headers: Dict[str, str], json_body: Dict[str, Any]
    ) -> HttpResponse:
        try:
            response = await self.client.post(url, headers=headers, json=json_body)
        except httpx.TimeoutException as e:
            logger.error(f"Request to {url} timed out: {e}")
            raise TransportError(f"Request to {url} timed out", url=url) from e
        except httpx.TransportError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        return HttpResponse(
            status_code=response.status_code,
            headers={key: response.headers.get_list(key) for key in response.headers.keys()},
            json_body=body,
            raw_body=response.text,
        )

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@asynccontextmanager
async def open_http_client(
    http_client: Optional[HttpClient] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
) -> AsyncIterator[HttpClient]:
    """Yield ``http_client``, or a temporary HttpxClient closed on exit."""
    if http_client is not None:
        yield http_client
        return
    async with HttpxClient(timeout=timeout) as client:
        yield client
