from __future__ import annotations


class ReposcopeError(Exception):
    """Base class for errors surfaced to callers of the aggregator."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidInput(ReposcopeError):
    """The caller passed something unusable, e.g. a blank username."""


class NotFound(ReposcopeError):
    """The upstream answered 404."""


class RateLimited(ReposcopeError):
    """The upstream answered 403/429, usually an exhausted rate limit."""


class UpstreamError(ReposcopeError):
    """Transport failure or any other non-success answer."""
