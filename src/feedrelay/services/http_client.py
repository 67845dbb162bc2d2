from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from feedrelay.errors import TransportError
from feedrelay.services.retry import RetryExhausted, with_retry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0
DEFAULT_RETRIES = 1
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_USER_AGENT = "FeedRelay/0.1"


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
        return parsed.scheme in {"http", "https"} and bool(parsed.hostname)
    except ValueError:
        return False


class HttpClient:
    """Timeout-bounded HTTP requests with a fixed number of retries.

    Every attempt gets its own timeout. A non-2xx status, a timeout or a
    transport failure ends the attempt; after the last one a
    :class:`TransportError` names the attempt count and the final cause.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self.retry_delay_seconds = retry_delay_seconds
        self.user_agent = user_agent
        self._transport = transport

    is_valid_url = staticmethod(is_valid_url)

    async def get(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        return await self.send(url, "GET", headers=headers)

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        return await self.send(url, "POST", json=payload, timeout_seconds=timeout_seconds)

    async def send(
        self,
        url: str,
        method: str = "GET",
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
        retries: int | None = None,
    ) -> httpx.Response:
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        retry_count = retries if retries is not None else self.retries
        request_headers = {"User-Agent": self.user_agent, **(headers or {})}

        async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
            async def attempt() -> httpx.Response:
                return await self.perform_request(
                    client,
                    url,
                    method=method,
                    json=json,
                    headers=request_headers,
                    timeout_seconds=timeout,
                )

            try:
                return await with_retry(
                    attempt,
                    retries=retry_count,
                    delay_seconds=self.retry_delay_seconds,
                    retry_on=(TransportError,),
                    description=f"HTTP {method} {url}",
                )
            except RetryExhausted as exc:
                raise TransportError(
                    f"HTTP request failed after {exc.attempts} attempts: {exc.last_error}",
                    attempts=exc.attempts,
                    last_error=str(exc.last_error),
                ) from exc.last_error

    async def perform_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        method: str = "GET",
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        """Run a single attempt and turn every failure into a TransportError."""
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        try:
            response = await client.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timeout after {int(timeout * 1000)}ms") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request failed: {exc}") from exc

        if not response.is_success:
            raise TransportError(f"HTTP error {response.status_code}: {response.reason_phrase}")

        return response
