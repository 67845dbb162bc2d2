import asyncio
import json

import httpx
import pytest

from feedrelay.errors import TransportError
from feedrelay.services.http_client import HttpClient, is_valid_url


def _client(handler, **kwargs) -> HttpClient:
    return HttpClient(retry_delay_seconds=0, transport=httpx.MockTransport(handler), **kwargs)


def test_get_returns_response_on_first_attempt() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="ok")

    response = asyncio.run(_client(handler).get("https://example.com/feed"))
    assert response.text == "ok"
    assert len(calls) == 1
    assert calls[0].headers["User-Agent"] == "FeedRelay/0.1"


def test_get_retries_once_and_succeeds() -> None:
    statuses = iter([503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), text="payload")

    response = asyncio.run(_client(handler).get("https://example.com/feed"))
    assert response.status_code == 200


def test_error_names_attempt_count_and_last_failure() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(_client(handler).get("https://example.com/feed"))

    assert str(excinfo.value) == "HTTP request failed after 2 attempts: HTTP error 500: Internal Server Error"
    assert excinfo.value.attempts == 2
    assert len(calls) == 2


def test_timeout_counts_as_failed_attempt() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler, timeout_seconds=0.05)
    with pytest.raises(TransportError, match="HTTP request failed after 2 attempts: Request timeout after 50ms"):
        asyncio.run(client.get("https://example.com/feed"))


def test_connection_error_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="Request failed: connection refused"):
        asyncio.run(_client(handler, retries=0).get("https://example.com/feed"))


def test_post_json_sends_body() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(204)

    asyncio.run(_client(handler).post_json("https://example.com/hook", {"embeds": []}))
    assert seen == [{"embeds": []}]


def test_is_valid_url() -> None:
    assert is_valid_url("http://example.com")
    assert is_valid_url("https://example.com/path?query=1")
    assert HttpClient.is_valid_url("https://example.com")
    assert not is_valid_url("ftp://example.com")
    assert not is_valid_url("example.com")
    assert not is_valid_url("not a url")
    assert not is_valid_url("https://")
