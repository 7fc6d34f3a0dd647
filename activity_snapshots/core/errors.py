class ActivitySnapshotError(Exception):
    """Base class for every error raised while building a snapshot."""


class MalformedInputError(ActivitySnapshotError):
    """Raised when a day record has a missing or unparseable field."""


class ConfigurationError(ActivitySnapshotError):
    """Raised when a pipeline is missing a required environment variable."""


class NetworkError(ActivitySnapshotError):
    """Raised when a request fails at the transport level after retries."""


class HttpStatusError(ActivitySnapshotError):
    """Raised when an upstream answers with a non-2xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"{url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class AuthenticationError(HttpStatusError):
    """Raised when an upstream rejects the configured credentials."""


class UpstreamFormatError(ActivitySnapshotError):
    """Raised when an upstream response does not have the expected shape."""
