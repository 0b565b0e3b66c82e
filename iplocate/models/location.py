from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from iplocate.errors import DecodeError


class LocationSuccess(BaseModel):
    """Location resolved by ip-api.com for the queried (or the caller's) address.

    String fields may be empty when the provider lacks data for the address.
    Coordinates are never coerced from strings: a non-numeric `lat`/`lon`
    is a schema mismatch, not missing data.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    status: Literal["success"]
    country: str = ""
    country_code: str = Field(default="", alias="countryCode")
    region: str = ""
    region_name: str = Field(default="", alias="regionName")
    city: str = ""
    zip_code: str = Field(default="", alias="zip")
    latitude: float = Field(alias="lat", ge=-90, le=90, strict=True)
    longitude: float = Field(alias="lon", ge=-180, le=180, strict=True)
    timezone: str = ""
    isp: str = ""
    org: str = ""
    as_name: str = Field(default="", alias="as")
    queried_address: str = Field(default="", alias="query")

    @property
    def is_success(self) -> bool:
        return True


class LocationFail(BaseModel):
    """Provider-level failure, e.g. `invalid query`, `private range` or `reserved range`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    status: Literal["fail"]
    message: str
    queried_address: str | None = Field(default=None, alias="query")

    @property
    def is_success(self) -> bool:
        return False


# The `status` tag is read first and selects which model validates the rest of the payload.
LocationResponse = Annotated[LocationSuccess | LocationFail, Field(discriminator="status")]

_location_adapter: TypeAdapter[LocationSuccess | LocationFail] = TypeAdapter(LocationResponse)


def decode_location(raw: bytes | str) -> LocationSuccess | LocationFail:
    """Decode a raw ip-api.com JSON body into a `LocationSuccess` or `LocationFail`.

    Raises DecodeError if the body is not JSON, the `status` field is missing or unknown,
    or a field required by the selected variant is missing or has the wrong type.
    """
    try:
        return _location_adapter.validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(f"Failed to decode IP provider response: {exc}") from exc
