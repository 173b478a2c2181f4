"""
Exception classes for the rally standings system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class RallyStandingsError(Exception):
    """Base exception for all rally standings errors."""
    pass


class ValidationError(RallyStandingsError):
    """Raised when model data violates an invariant."""
    pass


class ConfigurationError(RallyStandingsError):
    """Raised when the configuration file is missing or invalid."""
    pass


class SnapshotError(RallyStandingsError):
    """Raised when a persisted snapshot cannot be read or parsed."""
    pass


class FetchError(RallyStandingsError):
    """Base exception for failures confined to one fetch slot."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url: str = url
        self.message: str = message


class UrlError(FetchError):
    """The URL is malformed or uses an unsupported scheme."""
    pass


class TransportError(FetchError):
    """Connection, timeout, TLS or HTTP status failure."""
    pass


class DecodeError(FetchError):
    """The response body is not JSON or does not match the expected schema."""
    pass
