from pydantic import BaseModel, Field, field_validator


class LocationRequest(BaseModel):
    """Query parameters of the location endpoint.

    If `ip` is omitted, the location of the service's own public address is returned.
    The address is forwarded to ip-api.com unchecked; the provider reports invalid or
    private addresses itself.
    """

    ip: str | None = Field(
        default=None,
        description="IPv4 or IPv6 address to look up. If omitted, the service's public address is used.",
        examples=["8.8.8.8", "2001:4860:4860::8888"],
    )

    @field_validator("ip", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value_str = str(value).strip()
        return value_str or None
