import httpx

from iplocate.errors import ProviderFailError
from iplocate.logger import logger
from iplocate.lookup import LookupResult, build_endpoint_url, lookup_with_retry
from iplocate.models.location import LocationFail
from iplocate.settings import LookupSettings


class IpApiComClient:
    """Client for the http://ip-api.com JSON API.

    Holds only immutable settings (and an optional injected `httpx.AsyncClient`), so one
    instance can be shared by concurrent tasks. Without an injected HTTP client, a fresh
    `httpx.AsyncClient` is opened and closed around every lookup.
    """

    def __init__(self, settings: LookupSettings | None = None, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or LookupSettings()
        self._http_client = http_client

    @property
    def settings(self) -> LookupSettings:
        return self._settings

    async def locate(self, ip: str | None = None) -> LookupResult:
        """Look up the location of `ip`, or of the caller's public address when omitted."""
        url = build_endpoint_url(self._settings.endpoint_url, ip)
        if self._http_client is not None:
            return await self._locate_with(self._http_client, url)

        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
            return await self._locate_with(client, url)

    async def current_city(self) -> str:
        """Return the city of the caller's public address.

        Raises the lookup error when the lookup failed, and ProviderFailError when
        ip-api.com answered with `status: fail`.
        """
        location = (await self.locate()).unwrap()
        if isinstance(location, LocationFail):
            raise ProviderFailError(location.message)
        logger.info(f"Current city resolved city={location.city} query={location.queried_address}")
        return location.city

    async def _locate_with(self, client: httpx.AsyncClient, url: str) -> LookupResult:
        return await lookup_with_retry(
            client,
            url,
            max_attempts=self._settings.max_attempts,
            backoff=self._settings.backoff,
        )
