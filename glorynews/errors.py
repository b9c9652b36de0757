"""Exception taxonomy for the fetch-and-reconcile pipeline.

Network and parse errors are raised by the HTTP client and the parsers and are
caught at the source-adapter boundary; validation errors are caught inside the
validator. None of them reach callers of the ladder or news services.
"""

from __future__ import annotations


class GloryNewsError(Exception):
    """Base class for all glorynews errors."""


class NetworkError(GloryNewsError):
    """Timeout, connection failure, blocked host or non-2xx response."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class SSRFError(NetworkError):
    """Raised when a request targets a disallowed host or private IP."""


class ParseError(GloryNewsError):
    """Malformed HTML/JSON or a payload missing expected fields."""


class DataValidationError(GloryNewsError):
    """A standings table violates a schema invariant."""


class RateLimitExceeded(GloryNewsError):
    """No token became available for a resource within the wait bound."""

    def __init__(self, resource: str, waited: float) -> None:
        super().__init__(f"Rate limit exceeded for {resource!r} after {waited:.1f}s")
        self.resource = resource
        self.waited = waited
