"""Custom exception classes for Weather MCP."""

from typing import Optional


class WeatherMCPError(Exception):
    """Base class for all custom exceptions in Weather MCP."""

    pass


class ConfigurationError(WeatherMCPError):
    """Raised when the environment configuration is missing or invalid."""

    pass


class UpstreamError(WeatherMCPError):
    """
    Raised when a call to an upstream data provider fails.

    The message always names the upstream host so that tool callers can
    tell which provider misbehaved.
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        host: str = "",
        status: Optional[int] = None,
    ):
        self.url = url
        self.host = host
        self.status = status
        super().__init__(message)


class UpstreamStatusError(UpstreamError):
    """Raised when an upstream provider answers with a non-success status."""

    def __init__(self, url: str, host: str, status: int):
        super().__init__(
            f"Upstream {host} returned HTTP {status}",
            url=url,
            host=host,
            status=status,
        )


class UpstreamTimeoutError(UpstreamError):
    """Raised when an upstream request exceeds its timeout."""

    def __init__(self, url: str, host: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Upstream {host} timed out after {timeout:g}s",
            url=url,
            host=host,
        )


class LocationNotFoundError(WeatherMCPError):
    """Raised when geocoding finds no match for a place name."""

    def __init__(self, query: str, noun: str = "city"):
        self.query = query
        super().__init__(
            f'Could not find a location matching "{query}". '
            f"Try a more specific {noun} name."
        )


class TokenVerificationError(WeatherMCPError):
    """Raised when a bearer token fails signature or claim verification."""

    pass


class SessionNotFoundError(WeatherMCPError):
    """Raised when a request names a session that is not live."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found or expired: {session_id}")


class SessionConnectError(WeatherMCPError):
    """Raised when a new session's engine cannot be bound to its transport."""

    pass
