"""Lookup of the caller's location against the ip-api.com JSON endpoint.

`lookup_with_retry` is the entry point for embedding code; `lookup` performs exactly
one request and is exposed for callers that want to own the retry policy.
"""

import asyncio
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import cast

import httpx
import tenacity
from pydantic import BaseModel, ConfigDict, model_validator

from iplocate.errors import DecodeError, HttpStatusError, LocationLookupError, NetworkError
from iplocate.logger import logger
from iplocate.models.location import LocationFail, LocationSuccess, decode_location
from iplocate.settings import DEFAULT_ENDPOINT_URL, DEFAULT_MAX_ATTEMPTS, BackoffPolicy

# Lower-cased fragments of provider `message` values that signal throttling.
RATE_LIMIT_PHRASES = ("quota", "rate limit", "too many requests", "limit exceeded")


class LookupResult(BaseModel):
    """Outcome of a lookup: either a decoded location or the error that prevented one.

    A provider `fail` payload is a location (`LocationFail`), not an error: the request
    itself succeeded and the caller decides what the provider message means.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    location: LocationSuccess | LocationFail | None = None
    error: LocationLookupError | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "LookupResult":
        if (self.location is None) == (self.error is None):
            raise ValueError("LookupResult holds exactly one of location or error")
        return self

    @classmethod
    def from_location(cls, location: LocationSuccess | LocationFail) -> "LookupResult":
        return cls(location=location)

    @classmethod
    def from_error(cls, error: LocationLookupError) -> "LookupResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> LocationSuccess | LocationFail:
        """Return the location, or raise the stored error."""
        if self.error is not None:
            raise self.error
        return cast(LocationSuccess | LocationFail, self.location)


def build_endpoint_url(endpoint_url: str = DEFAULT_ENDPOINT_URL, ip: str | None = None) -> str:
    """Return the URL to query: the caller's own address, or `ip` as the trailing path segment.

    ip-api.com infers the caller's address when the path ends at `/json/`. The address is
    passed through as-is; the provider is the one validating it.
    """
    if ip is None:
        return endpoint_url
    url = httpx.URL(endpoint_url)
    return str(url.copy_with(path=f"{url.path.rstrip('/')}/{ip}"))


def is_rate_limit_message(message: str) -> bool:
    lower_msg = message.lower()
    return any(phrase in lower_msg for phrase in RATE_LIMIT_PHRASES)


def is_retryable(result: LookupResult) -> bool:
    """Classify a lookup result as transient.

    Network errors, HTTP 429 and 5xx, and provider `fail` payloads that mention a rate
    limit or quota are transient. Decode errors, other HTTP statuses and everything the
    provider resolved are final.
    """
    error = result.error
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, HttpStatusError):
        return (
            error.status_code == HTTPStatus.TOO_MANY_REQUESTS
            or error.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR
        )
    if error is not None:
        return False
    return isinstance(result.location, LocationFail) and is_rate_limit_message(result.location.message)


async def lookup(http_client: httpx.AsyncClient, endpoint_url: str = DEFAULT_ENDPOINT_URL) -> LookupResult:
    """Send one GET to `endpoint_url` and classify the answer.

    Transport failures and timeouts become NetworkError, non-2xx answers HttpStatusError,
    and bodies that do not match the ip-api.com schema DecodeError. Timeouts are
    whatever `http_client` is configured with.
    """
    try:
        response = await http_client.get(endpoint_url)
    except httpx.RequestError as exc:
        logger.warning(f"Request to IP provider failed url={endpoint_url} error={exc!r}")
        error = NetworkError(f"Request to IP provider failed: {exc!r}")
        error.__cause__ = exc
        return LookupResult.from_error(error)

    status_code = response.status_code
    if not HTTPStatus.OK <= status_code < HTTPStatus.MULTIPLE_CHOICES:
        logger.warning(f"IP provider returned HTTP error url={endpoint_url} status_code={status_code}")
        return LookupResult.from_error(HttpStatusError(status_code))

    try:
        location = decode_location(response.content)
    except DecodeError as exc:
        logger.warning(f"Malformed IP provider response url={endpoint_url} error={exc}")
        return LookupResult.from_error(exc)

    if isinstance(location, LocationFail):
        logger.info(f"IP provider reported failure url={endpoint_url} message={location.message!r}")
    else:
        logger.debug(f"Resolved location url={endpoint_url} query={location.queried_address} city={location.city}")
    return LookupResult.from_location(location)


async def lookup_with_retry(
    http_client: httpx.AsyncClient,
    endpoint_url: str = DEFAULT_ENDPOINT_URL,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: BackoffPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> LookupResult:
    """Look up the location, retrying transient failures with backoff.

    Up to `max_attempts` requests are made. After a transient outcome (see `is_retryable`)
    the call waits `backoff.delay_for(attempt)` seconds and tries again; any other outcome
    is returned immediately. When every attempt was transient, the last result is returned
    unchanged so the root cause stays visible.

    ip-api.com enforces a per-minute request quota on its free endpoint (answering HTTP 429
    once it is exceeded). Every retry counts against that quota, so aggressive settings
    (many attempts, short delays) can trigger or prolong the throttling they try to ride out.
    Keep `max_attempts` small and the delays generous.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    backoff = backoff or BackoffPolicy()

    def _log_retry(retry_state: tenacity.RetryCallState) -> None:
        logger.info(
            f"Retrying location lookup url={endpoint_url} attempt={retry_state.attempt_number} "
            f"max_attempts={max_attempts} delay={retry_state.next_action.sleep} "
            f"reason={_describe(retry_state.outcome.result())}"
        )

    def _give_up(retry_state: tenacity.RetryCallState) -> LookupResult:
        result = retry_state.outcome.result()
        logger.error(f"Location lookup gave up url={endpoint_url} attempts={max_attempts} reason={_describe(result)}")
        return result

    async def _sleep(seconds: float) -> None:
        await sleep(seconds)

    retrying = tenacity.AsyncRetrying(
        stop=tenacity.stop_after_attempt(max_attempts),
        wait=lambda retry_state: backoff.delay_for(retry_state.attempt_number),
        retry=tenacity.retry_if_result(is_retryable),
        before_sleep=_log_retry,
        retry_error_callback=_give_up,
        sleep=_sleep,
    )
    return await retrying(lookup, http_client, endpoint_url)


def _describe(result: LookupResult) -> str:
    if result.error is not None:
        return repr(result.error)
    if isinstance(result.location, LocationFail):
        return f"provider fail: {result.location.message}"
    return "resolved"
