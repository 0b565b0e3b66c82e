class LocationLookupError(Exception):
    """Base error for a failed location lookup."""


class NetworkError(LocationLookupError):
    """Raised when the request to the IP provider never produced a response (connection failure, timeout)."""


class HttpStatusError(LocationLookupError):
    """Raised when the IP provider answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"IP provider returned HTTP {status_code}")


class DecodeError(LocationLookupError):
    """Raised when the provider payload does not match the expected JSON schema."""


class ProviderFailError(LocationLookupError):
    """Raised when the provider answered with `status: fail` and the caller asked for a plain value."""
