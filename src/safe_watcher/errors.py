"""Error types raised by the Safe watcher.

Callers match on the class rather than the message:

- construction errors (``InvalidPrefixedAddressError``) are fatal and never retried
- ``NoEndpointError`` fails a fetch for a chain without a configured API
- ``TransportError`` and its subclasses are raised once retries are exhausted
- ``MalformedResponseError`` means upstream answered with an unexpected shape
"""


class SafeWatcherError(Exception):
    """Base class for all watcher errors."""


class InvalidPrefixedAddressError(SafeWatcherError, ValueError):
    """Raised when a ``prefix:0xADDRESS`` string is malformed."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"invalid prefixed safe address '{value}'")


class NoEndpointError(SafeWatcherError):
    """Raised when no upstream API is known for a chain prefix."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"no API URL for chain '{prefix}'")


class TransportError(SafeWatcherError):
    """Raised when an upstream request cannot be completed."""


class ResponseValidationError(TransportError):
    """Raised when a response arrives but fails structural checks."""


class InvalidStatusError(ResponseValidationError):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"invalid response status: {status_code}")


class InvalidContentTypeError(ResponseValidationError):
    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"invalid content type: {content_type}")


class MalformedResponseError(SafeWatcherError):
    """Raised when a JSON payload lacks fields required for normalization."""
