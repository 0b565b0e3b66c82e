import os

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENDPOINT_URL = "http://ip-api.com/json/"
DEFAULT_MAX_ATTEMPTS = 3

ENV_PREFIX = "IPLOCATE_"


class BackoffPolicy(BaseModel):
    """Exponential backoff between lookup attempts, capped at `max_delay_seconds`."""

    model_config = ConfigDict(frozen=True)

    initial_delay_seconds: float = Field(default=1.0, ge=0)
    factor: float = Field(default=2.0, ge=1)
    max_delay_seconds: float = Field(default=30.0, ge=0)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the 1-based `attempt` failed, before the next one starts."""
        delay = self.initial_delay_seconds * self.factor ** (attempt - 1)
        return min(delay, self.max_delay_seconds)


class LookupSettings(BaseModel):
    """Immutable configuration of the location lookup.

    `timeout_seconds` only applies when the client builds its own `httpx.AsyncClient`;
    an injected HTTP client keeps its own timeout configuration.
    """

    model_config = ConfigDict(frozen=True)

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    backoff: BackoffPolicy = BackoffPolicy()
    timeout_seconds: float = Field(default=5.0, gt=0)


def load_settings_from_env() -> LookupSettings:
    """Build LookupSettings for the embedding service from `IPLOCATE_*` environment variables.

    Unset variables fall back to the model defaults; invalid values raise a pydantic ValidationError.
    """
    backoff_values = {
        field: os.getenv(f"{ENV_PREFIX}{env_name}")
        for field, env_name in (
            ("initial_delay_seconds", "BACKOFF_INITIAL_SECONDS"),
            ("factor", "BACKOFF_FACTOR"),
            ("max_delay_seconds", "BACKOFF_MAX_SECONDS"),
        )
    }
    values = {
        field: os.getenv(f"{ENV_PREFIX}{env_name}")
        for field, env_name in (
            ("endpoint_url", "ENDPOINT_URL"),
            ("max_attempts", "MAX_ATTEMPTS"),
            ("timeout_seconds", "TIMEOUT_SECONDS"),
        )
    }
    values = {k: v for k, v in values.items() if v is not None}
    values["backoff"] = BackoffPolicy(**{k: v for k, v in backoff_values.items() if v is not None})
    return LookupSettings(**values)
