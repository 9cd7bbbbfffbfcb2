"""Feed validation: fetch a candidate URL and confirm it parses as a feed."""
import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import feedparser

from feedscout.errors import FeedValidationError, FetchError
from feedscout.http import FEED_ACCEPT, FEED_TIMEOUT, FetchResult, fetch_with_deadline
from feedscout.models import DiscoveredFeed
from feedscout.utils import strip_html

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Feed"

_JSONFEED_VERSION_PREFIX = "https://jsonfeed.org/version/"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one probe, with the extra facts the discovery context dedups on."""
    feed: Optional[DiscoveredFeed]
    final_url: Optional[str] = None
    feed_id: Optional[str] = None  # Atom <id>; RSS has no reliable identifier


def _parse_json_feed(body: bytes, url: str) -> Optional[DiscoveredFeed]:
    """Return a feed for a JSON Feed document, None if the body is not JSON Feed."""
    head = body.lstrip()[:1]
    if head != b"{":
        return None
    try:
        data = json.loads(body.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    version = data.get("version")
    if not isinstance(version, str) or not version.startswith(_JSONFEED_VERSION_PREFIX):
        return None
    title = strip_html(str(data.get("title") or "")) or UNTITLED
    description = strip_html(str(data.get("description") or "")) or None
    return DiscoveredFeed(url=url, title=title, type="json", description=description)


def parse_feed(body: bytes, url: str) -> Tuple[DiscoveredFeed, Optional[str]]:
    """Parse ``body`` as RSS 0.9x/2.0, RSS 1.0 (RDF), Atom or JSON Feed.

    Returns the feed metadata and the Atom feed id (or None).
    Raises FeedValidationError when the body is not a recognised feed.
    """
    json_feed = _parse_json_feed(body, url)
    if json_feed is not None:
        return json_feed, None

    try:
        d = feedparser.parse(body)
    except Exception as e:
        raise FeedValidationError(f"{url}: parser failed ({e})") from e
    version = d.get("version") or ""
    if not version:
        reason = d.get("bozo_exception") or "no feed markup"
        raise FeedValidationError(f"{url}: not a feed ({reason})")

    if version.startswith("atom"):
        feed_type = "atom"
    elif version.startswith("json"):
        feed_type = "json"
    else:
        # rss090-rss20, rss10 (RDF) and cdf are all reported as rss
        feed_type = "rss"

    meta = d.feed
    if d.get("bozo") and not (meta.get("title") or d.entries):
        raise FeedValidationError(f"{url}: malformed {version} document ({d.get('bozo_exception')})")
    title = strip_html(meta.get("title", "")) or UNTITLED
    description = strip_html(meta.get("subtitle", "") or meta.get("description", "")) or None
    feed_id = meta.get("id") if feed_type == "atom" else None
    return DiscoveredFeed(url=url, title=title, type=feed_type, description=description), feed_id or None


class FeedValidator:
    """Best-effort feed probe. ``validate`` never raises; failures mean "not a feed"."""

    def __init__(self, timeout: float = FEED_TIMEOUT, session=None,
                 fetch: Callable[..., FetchResult] = fetch_with_deadline):
        self.timeout = timeout
        self.session = session
        self._fetch = fetch

    def check(self, url: str, timeout: Optional[float] = None) -> ValidationOutcome:
        try:
            result = self._fetch(
                url,
                timeout if timeout is not None else self.timeout,
                headers={"Accept": FEED_ACCEPT},
                session=self.session,
            )
        except FetchError as e:
            logger.debug(f"[Validator] {e}")
            return ValidationOutcome(feed=None)

        try:
            feed, feed_id = parse_feed(result.content, url)
        except FeedValidationError as e:
            logger.debug(f"[Validator] {e}")
            return ValidationOutcome(feed=None, final_url=result.url)

        logger.info(f"[Validator] {url}: {feed.type} feed '{feed.title}'")
        return ValidationOutcome(feed=feed, final_url=result.url, feed_id=feed_id)

    def validate(self, url: str, timeout: Optional[float] = None) -> Optional[DiscoveredFeed]:
        return self.check(url, timeout).feed
