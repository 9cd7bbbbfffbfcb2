"""Exception types for feedscout."""
from typing import Optional


class FeedDiscoveryError(Exception):
    """Base class for every error raised by feedscout."""


class NoFeedsFoundError(FeedDiscoveryError):
    """Discovery finished without confirming a single feed.

    The registry never raises this itself; callers that treat an empty result
    as a failure (``api.require_feeds``, ``feedscout --strict``) do.
    """

    def __init__(self, url: str = "", message: str = "No RSS or Atom feeds found on this website"):
        self.url = url
        super().__init__(message)


class FetchError(FeedDiscoveryError):
    """Network failure or non-2xx response."""

    def __init__(self, url: str, message: str = "", status: Optional[int] = None):
        self.url = url
        self.status = status
        detail = message or (f"HTTP {status}" if status is not None else "request failed")
        super().__init__(f"{url}: {detail}")


class DeadlineExceeded(FetchError):
    """The request did not finish before its deadline."""


class ResponseTooLarge(FetchError):
    """The response body exceeded the configured byte cap."""


class FeedValidationError(FeedDiscoveryError):
    """A fetched body is not a recognised feed document."""
