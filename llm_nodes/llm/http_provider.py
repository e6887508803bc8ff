"""
Shared HTTP transport for vendor adapters.

WHAT: Base class owning one httpx.AsyncClient and the httpx -> ProviderError mapping
WHY: Every REST-backed adapter needs the same timeout, status and decoding handling
HOW: Thin request helpers wrapped in one error-translation context manager
"""

import json
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator

import httpx

from ..core.config import settings
from ..utils.exceptions import (
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


def build_client(timeout: float | None = None, max_retries: int | None = None) -> httpx.AsyncClient:
    """Create an async client with pooled connections and transport-level connect retries."""
    read_timeout = timeout if timeout is not None else settings.LLM_TIMEOUT
    retries = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES
    transport = httpx.AsyncHTTPTransport(
        retries=retries,
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.LLM_CONNECT_TIMEOUT, read=read_timeout),
        transport=transport,
    )


def add_optional(body: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        body[key] = value


class HTTPProvider:
    """Base for adapters that talk to a vendor REST API through httpx."""

    name = "http"

    def __init__(
        self,
        *,
        base_url: str | None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.client = client or build_client(timeout=timeout, max_retries=max_retries)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url or ''}{path}"

    @contextmanager
    def _translate_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except httpx.TimeoutException as e:
            logger.error(f"{self.name} {action} timed out")
            raise ProviderTimeoutError(f"{self.name} {action} timed out", provider=self.name) from e
        except httpx.TransportError as e:
            logger.error(f"{self.name} not reachable during {action}: {e}")
            raise ProviderUnavailableError(f"{self.name} is not reachable", provider=self.name) from e

    def _check_status(self, response: httpx.Response, action: str) -> None:
        if response.status_code >= 400:
            logger.error(f"{self.name} {action} HTTP error: {response.status_code}")
            raise ProviderResponseError(
                f"HTTP {response.status_code}: {response.text[:500]}",
                provider=self.name,
                status_code=response.status_code
            )

    def _decode_json(self, response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON from {self.name} during {action}: {e}")
            raise ProviderResponseError(f"Invalid response format: {e}", provider=self.name) from e

    def _require(self, data: Any, key: str, action: str) -> Any:
        value = data.get(key) if isinstance(data, dict) else None
        if value is None:
            logger.error(f"{self.name} {action} response missing '{key}'")
            raise ProviderResponseError(f"Invalid response format: missing '{key}'", provider=self.name)
        return value

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        action: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any
    ) -> Any:
        with self._translate_errors(action):
            response = await self.client.request(method, self._url(path), headers=headers, **kwargs)
        self._check_status(response, action)
        return self._decode_json(response, action)

    async def _request_text(
        self,
        method: str,
        path: str,
        *,
        action: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any
    ) -> str:
        with self._translate_errors(action):
            response = await self.client.request(method, self._url(path), headers=headers, **kwargs)
        self._check_status(response, action)
        return response.text

    @asynccontextmanager
    async def _stream(
        self,
        method: str,
        path: str,
        *,
        action: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming response, raising ProviderResponseError on an error status."""
        with self._translate_errors(action):
            async with self.client.stream(method, self._url(path), headers=headers, **kwargs) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._check_status(response, action)
                yield response

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
