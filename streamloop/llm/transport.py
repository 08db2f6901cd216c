"""
StreamLoop Transport - httpx-based request/stream transport

Provides:
- HTTPRequest: A fully shaped request produced by a provider's request builder
- HTTPTransport: Sends requests, classifies failed handshakes, streams
  Server-Sent Event payloads
- iter_sse_data: SSE framing (``data:`` lines -> payload strings)

Retries live here and only here: a failed handshake with a retryable error
(429, 503, timeout, connection) is retried with exponential back-off up to
``max_retries`` times. Once the first increment has been read nothing is
retried.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..errors import (
    ProviderConnectionError,
    ProviderError,
    ProviderResponseFormatError,
    ProviderTimeoutError,
    RateLimitedError,
    classify_http_error,
)

logger = logging.getLogger(__name__)


@dataclass
class HTTPRequest:
    """A request ready to be sent (URL, body, auth already applied)"""
    url: str
    method: str = "POST"
    json: Optional[Dict[str, Any]] = None
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    provider: str = "provider"


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield the data payload of each Server-Sent Event.

    Multi-line ``data:`` fields are joined with newlines; comments and other
    fields (event, id, retry) are ignored.
    """
    data_lines: List[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if name != "data":
            continue
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)

    if data_lines:
        yield "\n".join(data_lines)


class HTTPTransport:
    """
    Sends provider requests over a shared httpx.AsyncClient.

    Example:
        transport = HTTPTransport(timeout=60, stream_timeout=120)

        async with transport.stream(request) as increments:
            async for payload in increments:
                ...

        data = await transport.send(request)
    """

    def __init__(
        self,
        timeout: float = 60.0,
        stream_timeout: float = 120.0,
        max_retries: int = 0,
        retry_base_delay: float = 1.0,
        default_headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize transport.

        Args:
            timeout: Connect/write/pool timeout in seconds
            stream_timeout: Read timeout in seconds
            max_retries: Handshake retries for retryable errors
            retry_base_delay: Base delay for exponential back-off
            default_headers: Headers added to every request
            client: Pre-built httpx.AsyncClient (e.g. with a MockTransport)
        """
        self.timeout = timeout
        self.stream_timeout = stream_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.default_headers = default_headers or {}
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config, client: Optional[httpx.AsyncClient] = None) -> "HTTPTransport":
        """Build a transport from an LLMConfig"""
        return cls(
            timeout=config.timeout,
            stream_timeout=config.stream_timeout,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            default_headers=config.default_headers,
            client=client,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, read=self.stream_timeout),
                headers=self.default_headers or None,
            )
        return self._client

    def _build(self, request: HTTPRequest) -> httpx.Request:
        return self._get_client().build_request(
            request.method,
            request.url,
            json=request.json,
            params=request.params or None,
            headers=request.headers or None,
        )

    async def _open(self, request: HTTPRequest, stream: bool) -> httpx.Response:
        """Send the request, retrying retryable handshake failures."""
        client = self._get_client()
        attempt = 0
        while True:
            error: ProviderError
            try:
                response = await client.send(self._build(request), stream=stream)
            except httpx.TimeoutException as e:
                error = ProviderTimeoutError(
                    f"{request.provider} request timed out: {e}", request.provider
                )
                error.__cause__ = e
            except httpx.TransportError as e:
                error = ProviderConnectionError(
                    f"{request.provider} connection failed: {e}", request.provider
                )
                error.__cause__ = e
            else:
                if response.is_success:
                    return response
                body = await response.aread()
                await response.aclose()
                error = classify_http_error(
                    response.status_code,
                    body,
                    provider=request.provider,
                    headers=response.headers,
                )

            if not error.retryable or attempt >= self.max_retries:
                raise error

            delay = self.retry_base_delay * (2 ** attempt)
            if isinstance(error, RateLimitedError) and error.retry_after is not None:
                delay = error.retry_after
            attempt += 1
            logger.warning(
                f"{request.provider} request failed ({type(error).__name__}), "
                f"retrying in {delay}s (attempt {attempt}/{self.max_retries})"
            )
            await asyncio.sleep(delay)

    async def _iter_payloads(self, response: httpx.Response, provider: str) -> AsyncIterator[str]:
        try:
            async for payload in iter_sse_data(response.aiter_lines()):
                yield payload
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{provider} stream timed out: {e}", provider) from e
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"{provider} stream interrupted: {e}", provider) from e

    @asynccontextmanager
    async def stream(self, request: HTTPRequest) -> AsyncIterator[AsyncIterator[str]]:
        """
        Open a streaming request.

        The handshake (status code) is checked before the context is entered,
        so a 429 raises RateLimitedError here. Leaving the context, normally
        or not, closes the response.

        Yields:
            Async iterator of SSE data payloads
        """
        response = await self._open(request, stream=True)
        logger.debug(f"{request.provider} stream opened: {response.status_code}")
        payloads = self._iter_payloads(response, request.provider)
        try:
            yield payloads
        finally:
            await payloads.aclose()
            await response.aclose()
            logger.debug(f"{request.provider} stream closed")

    async def send(self, request: HTTPRequest) -> Dict[str, Any]:
        """
        Send a non-streaming request and return the decoded JSON body.

        Raises:
            ProviderError subclass on failed handshake
            ProviderResponseFormatError if a 2xx body is not a JSON object
        """
        response = await self._open(request, stream=False)
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseFormatError(
                f"{request.provider} Error: response body is not valid JSON",
                request.provider,
            ) from e
        if not isinstance(data, dict):
            raise ProviderResponseFormatError(
                f"{request.provider} Error: expected a JSON object response",
                request.provider,
            )
        return data

    async def close(self) -> None:
        """Close the HTTP client if this transport created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
