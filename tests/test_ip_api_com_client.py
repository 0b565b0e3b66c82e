from collections.abc import Callable
from typing import Any

import httpx
import pytest

from iplocate.clients.ip_api_com_client import IpApiComClient
from iplocate.errors import NetworkError, ProviderFailError
from iplocate.models.location import LocationSuccess
from iplocate.settings import BackoffPolicy, LookupSettings, load_settings_from_env
from tests.common import SUCCESS_PAYLOAD, ScriptedAsyncClient, ok, timeout

NO_WAIT_SETTINGS = LookupSettings(backoff=BackoffPolicy(initial_delay_seconds=0))


def make_fake_async_client(http_client: ScriptedAsyncClient) -> Callable[..., ScriptedAsyncClient]:
    """Factory for a fake httpx.AsyncClient that records the constructor kwargs."""

    def _fake_client(*args: Any, **kwargs: Any) -> ScriptedAsyncClient:
        http_client.init_kwargs = kwargs
        return http_client

    return _fake_client


@pytest.mark.asyncio
async def test_locate_caller_opens_and_closes_own_http_client(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without an injected client, a fresh httpx.AsyncClient with the configured timeout is used."""
    http_client = ScriptedAsyncClient([ok(SUCCESS_PAYLOAD)])
    monkeypatch.setattr(httpx, "AsyncClient", make_fake_async_client(http_client))

    client = IpApiComClient(LookupSettings(timeout_seconds=2.5))
    result = await client.locate()

    assert isinstance(result.location, LocationSuccess)
    assert http_client.requested_urls == ["http://ip-api.com/json/"]
    assert http_client.init_kwargs == {"timeout": 2.5}
    assert http_client.closed


@pytest.mark.asyncio
async def test_locate_explicit_ip_uses_injected_client() -> None:
    """An injected client is used for the explicit-IP URL and left open for its owner."""
    http_client = ScriptedAsyncClient([ok(SUCCESS_PAYLOAD)])

    client = IpApiComClient(NO_WAIT_SETTINGS, http_client=http_client)
    result = await client.locate("8.8.8.8")

    assert result.ok
    assert http_client.requested_urls == ["http://ip-api.com/json/8.8.8.8"]
    assert not http_client.closed


@pytest.mark.asyncio
async def test_locate_retries_up_to_configured_attempts() -> None:
    http_client = ScriptedAsyncClient([timeout()])
    settings = LookupSettings(max_attempts=2, backoff=BackoffPolicy(initial_delay_seconds=0))

    result = await IpApiComClient(settings, http_client=http_client).locate()

    assert isinstance(result.error, NetworkError)
    assert http_client.calls == 2


@pytest.mark.asyncio
async def test_locate_uses_configured_endpoint() -> None:
    http_client = ScriptedAsyncClient([ok(SUCCESS_PAYLOAD)])
    settings = LookupSettings(endpoint_url="https://pro.ip-api.com/json/?key=secret")

    await IpApiComClient(settings, http_client=http_client).locate("1.1.1.1")

    assert http_client.requested_urls == ["https://pro.ip-api.com/json/1.1.1.1?key=secret"]


@pytest.mark.asyncio
async def test_current_city() -> None:
    http_client = ScriptedAsyncClient([ok(SUCCESS_PAYLOAD)])

    city = await IpApiComClient(NO_WAIT_SETTINGS, http_client=http_client).current_city()

    assert city == "San Francisco"


@pytest.mark.asyncio
async def test_current_city_provider_fail_raises() -> None:
    http_client = ScriptedAsyncClient([ok({"status": "fail", "message": "reserved range"})])

    with pytest.raises(ProviderFailError, match="reserved range"):
        await IpApiComClient(NO_WAIT_SETTINGS, http_client=http_client).current_city()


@pytest.mark.asyncio
async def test_current_city_network_failure_raises() -> None:
    http_client = ScriptedAsyncClient([timeout()])

    with pytest.raises(NetworkError):
        await IpApiComClient(NO_WAIT_SETTINGS, http_client=http_client).current_city()


def test_load_settings_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENDPOINT_URL",
        "MAX_ATTEMPTS",
        "TIMEOUT_SECONDS",
        "BACKOFF_INITIAL_SECONDS",
        "BACKOFF_FACTOR",
        "BACKOFF_MAX_SECONDS",
    ):
        monkeypatch.delenv(f"IPLOCATE_{name}", raising=False)

    assert load_settings_from_env() == LookupSettings()


def test_load_settings_from_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IPLOCATE_ENDPOINT_URL", "http://localhost:9000/json/")
    monkeypatch.setenv("IPLOCATE_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("IPLOCATE_BACKOFF_INITIAL_SECONDS", "0.25")
    monkeypatch.setenv("IPLOCATE_BACKOFF_FACTOR", "1")

    settings = load_settings_from_env()

    assert settings.endpoint_url == "http://localhost:9000/json/"
    assert settings.max_attempts == 5
    assert settings.backoff.initial_delay_seconds == 0.25
    assert settings.backoff.factor == 1.0
    assert settings.backoff.max_delay_seconds == 30.0
