import json
from collections.abc import Sequence
from http import HTTPStatus
from typing import Any

import httpx

SUCCESS_PAYLOAD: dict[str, Any] = {
    "status": "success",
    "country": "United States",
    "countryCode": "US",
    "region": "CA",
    "regionName": "California",
    "city": "San Francisco",
    "zip": "94107",
    "lat": 37.7749,
    "lon": -122.4194,
    "timezone": "America/Los_Angeles",
    "isp": "Google",
    "org": "Google LLC",
    "as": "AS15169 Google LLC",
    "query": "8.8.8.8",
}


class MockResponse:
    def __init__(self, status_code: int, payload: dict[str, Any] | None = None, content: bytes | None = None) -> None:
        self.status_code = status_code
        self.content = content if content is not None else json.dumps(payload or {}).encode()


def ok(payload: dict[str, Any]) -> MockResponse:
    return MockResponse(status_code=HTTPStatus.OK, payload=payload)


def timeout(url: str = "http://ip-api.com/json/") -> httpx.TimeoutException:
    return httpx.ConnectTimeout("timed out", request=httpx.Request("GET", url))


class ScriptedAsyncClient:
    """Stand-in for httpx.AsyncClient that replays a fixed sequence of outcomes.

    Each outcome is either a MockResponse to return or an exception to raise.
    Requested URLs are recorded so tests can assert on the number of calls.
    """

    def __init__(self, outcomes: Sequence[MockResponse | Exception]) -> None:
        self._outcomes = list(outcomes)
        self.requested_urls: list[str] = []
        self.closed = False
        self.init_kwargs: dict[str, Any] = {}

    @property
    def calls(self) -> int:
        return len(self.requested_urls)

    async def __aenter__(self) -> "ScriptedAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    async def get(self, url: str) -> MockResponse:
        self.requested_urls.append(url)
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    """Async sleep replacement that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
