"""Standard discovery: the fallback that works on any website.

Probes, in order:
  1. the input URL itself
  2. the input path with .rss / .atom / .xml appended (Mastodon's @user.rss)
  3. well-known feed paths on the host, and relative to the input path
  4. <link type="application/rss+xml" ...> tags in the page HTML

Each probe step is isolated: a step that blows up contributes nothing and
the remaining steps still run.
"""
import logging
from typing import Callable, List
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from feedscout.context import DiscoveryContext
from feedscout.errors import FetchError
from feedscout.http import BROWSER_HEADERS, PAGE_TIMEOUT, fetch_with_deadline
from feedscout.models import DiscoveredFeed
from feedscout.services.base import DiscoveryService

logger = logging.getLogger(__name__)

FEED_EXTENSIONS = (".rss", ".atom", ".xml")

COMMON_PATHS = [
    "/feed",
    "/rss",
    "/atom",
    "/atom.xml",
    "/feed.xml",
    "/rss.xml",
    "/index.xml",
    "/feeds/posts/default",   # Blogger
    "/feeds/all.atom",
    "/feed/atom/",
    "/blog/feed",
    "/blog/rss",
    "/blog/rss.xml",
    "/blog/feed.xml",
    "/blog/atom.xml",
]

PATH_RELATIVE_PATHS = [
    "feed",
    "rss",
    "atom",
    "atom.xml",
    "feed.xml",
    "rss.xml",
    "index.xml",
]

# MIME types on <link> tags that indicate a feed
FEED_LINK_TYPES = {
    "application/rss+xml",
    "application/atom+xml",
    "application/feed+json",
}


def _dedupe(urls: List[str]) -> List[str]:
    seen = set()
    out = []
    for u in urls:
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out


def resolve_href(href: str, base_url: str, scheme: str) -> str:
    """Resolve a <link href> against the site root.

    Absolute URLs pass through, protocol-relative URLs get the input scheme,
    absolute paths get the host prefixed, and anything else is taken
    relative to the host root.
    """
    if href.startswith("//"):
        return f"{scheme}:{href}"
    if href.lower().startswith(("http://", "https://")):
        return href
    if href.startswith("/"):
        return f"{base_url}{href}"
    return f"{base_url}/{href}"


def extract_feed_links(html, base_url: str, scheme: str = "https") -> List[str]:
    """Return resolved feed URLs advertised by <link> tags in ``html`` (str or bytes)."""
    soup = BeautifulSoup(html, "html.parser")
    urls: List[str] = []
    for link in soup.find_all("link"):
        link_type = (link.get("type") or "").strip().lower()
        if link_type not in FEED_LINK_TYPES:
            continue
        href = (link.get("href") or "").strip()
        if not href:
            continue
        urls.append(resolve_href(href, base_url, scheme))
    return _dedupe(urls)


class StandardDiscoveryService(DiscoveryService):
    """Handles any URL using common feed URL patterns; runs after domain services."""

    name = "standard"
    priority = 100

    def __init__(self, page_timeout: float = PAGE_TIMEOUT):
        self.page_timeout = page_timeout

    def can_handle(self, url: str) -> bool:
        return True

    def _fetch_page(self, url: str, session=None):
        return fetch_with_deadline(url, self.page_timeout, headers=BROWSER_HEADERS, session=session)

    @staticmethod
    def _probe(step: str, url: str, fn: Callable[[], List[DiscoveredFeed]]) -> List[DiscoveredFeed]:
        try:
            found = fn()
        except Exception as e:
            logger.debug(f"[Standard] {step} probe failed for {url}: {e}")
            return []
        if found:
            logger.debug(f"[Standard] {step} probe found {len(found)} feed(s) for {url}")
        return found

    def discover(self, url: str, context: DiscoveryContext) -> List[DiscoveredFeed]:
        try:
            parsed = urlparse(url)
            host = parsed.hostname
            port = parsed.port
        except ValueError as e:
            logger.debug(f"[Standard] Unparseable URL {url}: {e}")
            return []
        if parsed.scheme not in ("http", "https") or not host:
            logger.debug(f"[Standard] Not an http(s) URL: {url}")
            return []

        scheme = parsed.scheme
        base_url = f"{scheme}://{host}{':' + str(port) if port else ''}"
        original_path = parsed.path or "/"
        input_pathname = original_path if original_path.endswith("/") else f"{original_path}/"

        # The page is only needed for the last step, so start fetching it now
        page = context.submit(self._fetch_page, url, getattr(context.validator, "session", None))

        feeds: List[DiscoveredFeed] = []

        def direct() -> List[DiscoveredFeed]:
            feed = context.validate_feed(url)
            return [feed] if feed else []

        feeds += self._probe("direct", url, direct)

        if not original_path.endswith(FEED_EXTENSIONS):
            feeds += self._probe("extension", url, lambda: context.validate_many(
                f"{base_url}{original_path}{ext}" for ext in FEED_EXTENSIONS
            ))

        feeds += self._probe("common-path", url, lambda: context.validate_many(
            f"{base_url}{path}" for path in COMMON_PATHS
        ))

        if input_pathname != "/":
            feeds += self._probe("path-relative", url, lambda: context.validate_many(
                f"{base_url}{input_pathname}{path}" for path in PATH_RELATIVE_PATHS
            ))

        def html_links() -> List[DiscoveredFeed]:
            try:
                result = page.result()
            except FetchError as e:
                logger.debug(f"[Standard] HTML fetch failed for {url}: {e}")
                return []
            links = extract_feed_links(result.content, base_url, scheme)
            logger.debug(f"[Standard] {url}: {len(links)} <link> feed candidate(s)")
            return context.validate_many(links)

        feeds += self._probe("html-link", url, html_links)

        logger.info(f"[Standard] {url}: {len(feeds)} feed(s) found")
        return feeds
