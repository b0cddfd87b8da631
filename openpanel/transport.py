"""
OpenPanel SDK Transport
=======================

Single-event HTTP POST with exponential backoff.

Only network-level failures are retried. A response outside 2xx is final for
that event, whatever the status code.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

import httpx

from openpanel.exceptions import ConfigurationError, HTTPStatusError, TransportError
from openpanel.models import Event, encode_event


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Transport:
    """
    Async HTTP sender used by the delivery worker.

    Example:
        transport = Transport(
            "https://api.openpanel.dev",
            headers={"openpanel-client-id": "..."},
        )
        body = await transport.send("/track", event)
    """

    DEFAULT_MAX_RETRIES = 3
    DEFAULT_INITIAL_RETRY_DELAY = 0.5

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        timeout: Optional[float] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Args:
            base_url: API root; request paths are appended to it verbatim
            headers: Headers sent with every request
            max_retries: Extra attempts after a network failure
            initial_retry_delay: Seconds before the first retry, doubled each time
            timeout: Request timeout in seconds (None keeps the httpx default)
            http_transport: Replacement httpx transport, e.g. ``httpx.MockTransport``
            sleep: Coroutine used to wait between attempts
        """
        self.base_url = base_url
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self._headers = httpx.Headers(headers)
        self._headers["Content-Type"] = "application/json"
        self._timeout = timeout
        self._http_transport = http_transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def add_header(self, key: str, value: str) -> None:
        self._headers[key] = value

    def retry_delay(self, retry: int) -> float:
        """Delay before the ``retry``-th retry (1-based)."""
        return self.initial_retry_delay * (2 ** (retry - 1))

    def _get_client(self) -> httpx.AsyncClient:
        # Created on first use so it binds to the loop that sends.
        if self._client is None:
            kwargs = {}
            if self._timeout is not None:
                kwargs["timeout"] = self._timeout
            if self._http_transport is not None:
                kwargs["transport"] = self._http_transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    def _build_url(self, path: str) -> httpx.URL:
        raw = f"{self.base_url}{path}"
        try:
            url = httpx.URL(raw)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid URL {raw!r}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(f"Invalid URL {raw!r}")
        return url

    async def send(
        self,
        path: str,
        event: Event,
        headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """
        POST one event and return the raw response body.

        Raises:
            ConfigurationError: base URL + path is not a usable URL
            EncodingError: the event cannot be serialized
            HTTPStatusError: the API answered outside 2xx
            TransportError: every attempt failed before a response arrived
        """
        url = self._build_url(path)
        body = encode_event(event)
        request_headers = self._headers.copy()
        if headers:
            request_headers.update(headers)
        client = self._get_client()

        attempt = 0
        while True:
            try:
                response = await client.post(url, content=body, headers=request_headers)
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    raise TransportError(
                        f"POST {url} failed after {attempt + 1} attempts: {type(e).__name__}: {e}",
                        attempts=attempt + 1,
                    ) from e
                attempt += 1
                delay = self.retry_delay(attempt)
                logger.warning(
                    "POST %s failed (%s), retry %d/%d in %.2fs",
                    url, type(e).__name__, attempt, self.max_retries, delay,
                )
                await self._sleep(delay)
                continue

            if not 200 <= response.status_code < 300:
                raise HTTPStatusError(
                    f"HTTP error: {response.status_code}",
                    status_code=response.status_code,
                    response=response.content,
                )
            return response.content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
