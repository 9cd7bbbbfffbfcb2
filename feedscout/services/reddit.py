"""Reddit discovery for subreddit and user feeds, plus subreddit icons.

Reddit serves an RSS feed for every subreddit and user at ``/.rss``; the
page HTML is useless for discovery, so the feed URL is built directly from
the path. Subreddit icons come from the public ``about.json`` endpoint.
"""
import html
import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from feedscout.context import DiscoveryContext
from feedscout.errors import FetchError
from feedscout.http import METADATA_TIMEOUT, fetch_with_deadline
from feedscout.models import DiscoveredFeed
from feedscout.services.base import DiscoveryService
from feedscout.utils import hostname_of, is_subdomain_of

logger = logging.getLogger(__name__)

# Subreddits: 3-21 chars, users: 3-20 chars; letters, digits, underscore, hyphen
_IDENTIFIER_RE = re.compile(r"/r/([A-Za-z0-9_-]{3,21})(?:/|$)|/(?:user|u)/([A-Za-z0-9_-]{3,20})(?:/|$)")

ABOUT_URL = "https://www.reddit.com/r/{name}/about.json"


@dataclass(frozen=True)
class RedditTarget:
    kind: str   # "subreddit" or "user"
    name: str


def extract_identifier(url: str) -> Optional[RedditTarget]:
    """Pull the subreddit or user name out of a Reddit URL path."""
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    match = _IDENTIFIER_RE.search(path)
    if not match:
        return None
    if match.group(1):
        return RedditTarget("subreddit", match.group(1))
    return RedditTarget("user", match.group(2))


def build_feed_url(url: str) -> Optional[str]:
    """Feed URL for a Reddit page, keeping its host (www., old., bare...)."""
    target = extract_identifier(url)
    if target is None:
        return None
    parsed = urlparse(url)
    base_url = f"{parsed.scheme or 'https'}://{parsed.hostname}"
    if target.kind == "subreddit":
        return f"{base_url}/r/{target.name}/.rss"
    return f"{base_url}/user/{target.name}/.rss"


class RedditDiscoveryService(DiscoveryService):
    name = "reddit"
    priority = 10

    def __init__(self, metadata_timeout: float = METADATA_TIMEOUT):
        self.metadata_timeout = metadata_timeout

    def can_handle(self, url: str) -> bool:
        host = hostname_of(url)
        return bool(host) and is_subdomain_of(host, "reddit.com")

    def get_subreddit_icon(self, subreddit: str, session=None) -> Optional[str]:
        """Icon URL from about.json, or None on any failure (including timeout)."""
        about_url = ABOUT_URL.format(name=subreddit)
        try:
            data = fetch_with_deadline(
                about_url, self.metadata_timeout,
                headers={"Accept": "application/json"}, session=session,
            ).json()
        except FetchError as e:
            logger.info(f"[Reddit] No icon for r/{subreddit}: {e}")
            return None
        except ValueError as e:
            logger.info(f"[Reddit] Bad about.json for r/{subreddit}: {e}")
            return None

        about = data.get("data") if isinstance(data, dict) else None
        if not isinstance(about, dict):
            return None
        # community_icon is the modern icon, icon_img the legacy one
        icon = about.get("community_icon") or about.get("icon_img")
        if not icon or not isinstance(icon, str):
            return None
        # Reddit returns icons with HTML-escaped signing params; the bare URL works
        return html.unescape(icon).split("?")[0]

    def discover(self, url: str, context: DiscoveryContext) -> List[DiscoveredFeed]:
        with context.telemetry.span("feed.discovery.reddit", {"url": url}) as span:
            try:
                target = extract_identifier(url)
                feed_url = build_feed_url(url)
                if target is None or feed_url is None:
                    span.set_status(False, "Not a subreddit or user URL")
                    return []
                span.set_attribute("feed_type", target.kind)
                span.set_attribute(target.kind, target.name)

                icon_future = None
                if target.kind == "subreddit":
                    icon_future = context.submit(
                        self.get_subreddit_icon, target.name,
                        getattr(context.validator, "session", None),
                    )

                feed = context.validate_feed(feed_url)
                icon_url = None
                if icon_future is not None:
                    try:
                        icon_url = icon_future.result()
                    except Exception as e:
                        logger.info(f"[Reddit] Icon lookup for r/{target.name} failed: {e}")

                if feed is None:
                    span.set_status(False, "Feed validation failed")
                    return []

                span.set_status(True)
                if icon_url:
                    span.set_attribute("icon_url", icon_url)
                logger.info(f"[Reddit] {url}: {feed_url}")
                return [feed.with_icon(icon_url)]
            except Exception as e:
                span.set_status(False, "Discovery failed")
                logger.error(f"[Reddit] Discovery failed for {url}: {e}")
                context.telemetry.capture_exception(e, {"operation": "reddit_discovery", "input_url": url})
                return []
