from http import HTTPStatus
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import ValidationError

from iplocate.clients.ip_api_com_client import IpApiComClient
from iplocate.errors import HttpStatusError, LocationLookupError
from iplocate.exception_handlers import (
    pydantic_validation_exception_handler,
    unhandled_exception_handler,
)
from iplocate.logger import configure_logging, logger
from iplocate.lookup import is_rate_limit_message
from iplocate.models.location import LocationFail
from iplocate.models.request_models import LocationRequest
from iplocate.models.response_models import HealthResponse, LocationLookupResponse
from iplocate.settings import LookupSettings, load_settings_from_env

app = FastAPI(
    title="IP Location Service",
    version="0.1.0",
    description="Best-effort location of a public IP address, resolved through ip-api.com.",
)
configure_logging()
logger.info("Started IP Location Service")


def get_settings() -> LookupSettings:
    """Dependency to provide lookup settings read from the environment."""
    return load_settings_from_env()


def get_location_client(settings: Annotated[LookupSettings, Depends(get_settings)]) -> IpApiComClient:
    """Dependency to provide an IpApiComClient instance."""
    return IpApiComClient(settings)


app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def _lookup_error_to_http(exc: LocationLookupError) -> HTTPException:
    if isinstance(exc, HttpStatusError) and exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "rate_limited", "message": str(exc)},
        )
    # Network, decode and any other HTTP status are failures of the upstream provider.
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "upstream_error", "message": str(exc)},
    )


def _provider_fail_to_http(location: LocationFail) -> HTTPException:
    if is_rate_limit_message(location.message):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "rate_limited", "message": location.message},
        )
    return HTTPException(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        detail={"code": "lookup_failed", "message": location.message},
    )


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.get(
    "/v1/location",
    response_model=LocationLookupResponse,
    status_code=status.HTTP_200_OK,
    tags=["location"],
    summary="Look up the location of an IP address.",
)
async def location_lookup(
    request: Request,
    query: Annotated[LocationRequest, Depends()],
    client: Annotated[IpApiComClient, Depends(get_location_client)],
) -> LocationLookupResponse:
    """Look up the location of `query.ip`, or of the service's own public address.

    Provider failures (`status: fail`) are returned as 422 with the provider message,
    except rate-limit messages, which like HTTP 429 become 503.
    """
    ip = query.ip
    logger.info(f"Performing location lookup path={request.url.path} method={request.method} ip={ip}")
    result = await client.locate(ip)

    try:
        location = result.unwrap()
    except LocationLookupError as exc:
        logger.error(
            f"Location lookup failed path={request.url.path} method={request.method} ip={ip} error={exc!r}"
        )
        raise _lookup_error_to_http(exc) from exc

    if isinstance(location, LocationFail):
        logger.error(
            "IP provider could not resolve location "
            f"path={request.url.path} method={request.method} ip={ip} message={location.message!r}"
        )
        raise _provider_fail_to_http(location)

    return LocationLookupResponse.from_location(location)
