"""Public Python API for feedscout, for use as a library.

Quick start:

    from feedscout.api import discover_feeds

    feeds = discover_feeds("https://example.com/blog")
    for f in feeds:
        print(f.type, f.title, f.url)

Treat "nothing found" as an error (what a subscribe flow wants):

    from feedscout.api import require_feeds
    from feedscout.errors import NoFeedsFoundError

    try:
        feeds = require_feeds("https://www.reddit.com/r/python")
    except NoFeedsFoundError as e:
        print(e)

Tracing:

    from feedscout.telemetry import LoggingTelemetry
    feeds = discover_feeds(url, telemetry=LoggingTelemetry())

Apple Podcasts, Reddit and the standard prober are enabled by default.
Disable any with disabled={"apple", "reddit"} or no_<service>=True.
"""
from __future__ import annotations

from typing import List, Optional, Set

from feedscout.context import DEFAULT_MAX_WORKERS
from feedscout.errors import NoFeedsFoundError
from feedscout.http import FEED_TIMEOUT
from feedscout.models import DiscoveredFeed
from feedscout.registry import create_default_registry, get_all_keys
from feedscout.telemetry import TelemetryAdapter
from feedscout.validator import FeedValidator


def normalize_input_url(url: str) -> str:
    """Trim whitespace and add ``https://`` to scheme-less input like ``example.com``."""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url.lstrip('/')}"
    return url


def discover_feeds(
    url: str,
    *,
    telemetry: Optional[TelemetryAdapter] = None,
    disabled: Optional[Set[str]] = None,
    timeout: float = FEED_TIMEOUT,
    page_timeout: Optional[float] = None,
    metadata_timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    # Legacy no_<service> kwargs accepted for convenience
    **kwargs,
) -> List[DiscoveredFeed]:
    """Find and validate every feed reachable from ``url``.

    Args:
        url: Any page URL; scheme-less input is treated as https.
        telemetry: Span/breadcrumb/exception sink (default: no-op).
        disabled: Service keys to skip (e.g. {"reddit"}).
        timeout: Deadline for each feed validation probe, in seconds.
        page_timeout: Deadline for HTML pages and directory lookups.
        metadata_timeout: Deadline for icon lookups.
        max_workers: Parallel probes per discovery call.
        **kwargs: no_<service>=True flags (e.g. no_apple=True).

    Returns:
        Deduplicated feeds; empty when nothing was found.
    """
    skip: set = set(disabled or set())
    for key in get_all_keys():
        if kwargs.get(f"no_{key}", False):
            skip.add(key)

    registry = create_default_registry(
        telemetry=telemetry,
        disabled=skip,
        validator=FeedValidator(timeout=timeout),
        timeouts={
            "page_timeout": page_timeout,
            "lookup_timeout": page_timeout,
            "metadata_timeout": metadata_timeout,
        },
        max_workers=max_workers,
    )
    return registry.discover(normalize_input_url(url))


def require_feeds(url: str, **kwargs) -> List[DiscoveredFeed]:
    """Like :func:`discover_feeds`, but raise NoFeedsFoundError on an empty result."""
    feeds = discover_feeds(url, **kwargs)
    if not feeds:
        raise NoFeedsFoundError(url)
    return feeds
