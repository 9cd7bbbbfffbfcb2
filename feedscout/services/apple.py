"""Apple Podcasts discovery via the iTunes lookup API.

Podcast pages on podcasts.apple.com never link their RSS feed, but the
lookup API returns it (often on another host, e.g. rss.art19.com).
"""
import logging
import re
from dataclasses import replace
from typing import List, Optional

from feedscout.context import DiscoveryContext
from feedscout.errors import FetchError
from feedscout.http import PAGE_TIMEOUT, fetch_with_deadline
from feedscout.models import DiscoveredFeed
from feedscout.services.base import DiscoveryService
from feedscout.utils import hostname_of, is_subdomain_of, strip_html

logger = logging.getLogger(__name__)

LOOKUP_URL = "https://itunes.apple.com/lookup?id={podcast_id}&entity=podcast"

_PODCAST_ID_RE = re.compile(r"/id(\d+)(?:[/?#]|$)")


def extract_podcast_id(url: str) -> Optional[str]:
    """Podcast id from URLs like https://podcasts.apple.com/us/podcast/name/id1234567890."""
    match = _PODCAST_ID_RE.search(url)
    return match.group(1) if match else None


class AppleDiscoveryService(DiscoveryService):
    name = "apple"
    priority = 10

    def __init__(self, lookup_timeout: float = PAGE_TIMEOUT):
        self.lookup_timeout = lookup_timeout

    def can_handle(self, url: str) -> bool:
        host = hostname_of(url)
        return bool(host) and is_subdomain_of(host, "apple.com")

    def lookup(self, podcast_id: str, session=None) -> Optional[dict]:
        """First podcast record from the iTunes lookup API, or None."""
        try:
            data = fetch_with_deadline(
                LOOKUP_URL.format(podcast_id=podcast_id), self.lookup_timeout,
                headers={"Accept": "application/json"}, session=session,
            ).json()
        except FetchError as e:
            logger.info(f"[Apple] Lookup failed for id{podcast_id}: {e}")
            return None
        except ValueError as e:
            logger.info(f"[Apple] Bad lookup response for id{podcast_id}: {e}")
            return None
        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results[0], dict):
            return None
        return results[0]

    def discover(self, url: str, context: DiscoveryContext) -> List[DiscoveredFeed]:
        try:
            podcast_id = extract_podcast_id(url)
            if not podcast_id:
                # Not a podcast page; let the standard service have a go
                return []

            podcast = self.lookup(podcast_id, getattr(context.validator, "session", None))
            if not podcast or not podcast.get("feedUrl"):
                return []

            feed = context.validate_feed(podcast["feedUrl"])
            if feed is None:
                return []

            # Directory metadata is usually cleaner than what the RSS carries
            overrides = {}
            if podcast.get("collectionName"):
                overrides["title"] = podcast["collectionName"]
            description = podcast.get("longDescription") or podcast.get("shortDescription")
            if description:
                overrides["description"] = strip_html(description)
            artwork = podcast.get("artworkUrl600") or podcast.get("artworkUrl100")

            feed = replace(feed, **overrides).with_icon(artwork)
            logger.info(f"[Apple] id{podcast_id}: {feed.url}")
            return [feed]
        except Exception as e:
            logger.error(f"[Apple] Podcast discovery failed for {url}: {e}")
            context.telemetry.capture_exception(e, {"operation": "apple_discovery", "input_url": url})
            return []
