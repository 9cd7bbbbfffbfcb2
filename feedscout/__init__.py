"""feedscout: find every RSS/Atom/JSON feed behind a URL."""
__version__ = "1.0.0"

from feedscout.models import DiscoveredFeed, normalize_feed_url  # noqa: E402
from feedscout.errors import (  # noqa: E402
    DeadlineExceeded,
    FeedDiscoveryError,
    FeedValidationError,
    FetchError,
    NoFeedsFoundError,
)
from feedscout.api import discover_feeds, require_feeds  # noqa: E402
from feedscout.registry import DiscoveryRegistry, create_default_registry  # noqa: E402

__all__ = [
    "__version__",
    "DiscoveredFeed",
    "normalize_feed_url",
    "DeadlineExceeded",
    "FeedDiscoveryError",
    "FeedValidationError",
    "FetchError",
    "NoFeedsFoundError",
    "discover_feeds",
    "require_feeds",
    "DiscoveryRegistry",
    "create_default_registry",
]
