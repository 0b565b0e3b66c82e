from pydantic import BaseModel

from iplocate.models.location import LocationSuccess


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class LocationLookupResponse(BaseModel):
    """Response model for a resolved location."""

    ip: str
    country: str
    country_code: str
    region: str
    region_name: str
    city: str
    zip_code: str
    latitude: float
    longitude: float
    timezone: str
    isp: str
    org: str

    @classmethod
    def from_location(cls, location: LocationSuccess) -> "LocationLookupResponse":
        return cls(
            ip=location.queried_address,
            country=location.country,
            country_code=location.country_code,
            region=location.region,
            region_name=location.region_name,
            city=location.city,
            zip_code=location.zip_code,
            latitude=location.latitude,
            longitude=location.longitude,
            timezone=location.timezone,
            isp=location.isp,
            org=location.org,
        )
