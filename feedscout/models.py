"""Data models for feedscout."""
from dataclasses import dataclass, replace
from typing import Literal, Optional
from urllib.parse import parse_qsl, urlencode, urlparse

FeedType = Literal["rss", "atom", "json"]

# Query parameters that never change which feed is served (case-insensitive prefix match)
_TRACKING_PREFIXES = (
    "utm_", "fbclid", "gclid", "gclsrc", "msclkid", "mc_cid", "mc_eid",
)
_TRACKING_EXACT = {"ref", "source", "_ga", "_gid"}

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_tracking_param(key: str) -> bool:
    k = key.lower()
    return k in _TRACKING_EXACT or any(k.startswith(p) for p in _TRACKING_PREFIXES)


def normalize_feed_url(url: str) -> str:
    """Normalize a URL so that two spellings of the same feed compare equal.

    Lower-cases scheme and host, drops default ports, the fragment, tracking
    params and a trailing slash (root path excepted), and sorts the remaining
    query params. Unparseable input is returned unchanged.
    """
    try:
        parsed = urlparse(url.strip())
        if not parsed.scheme or not parsed.netloc:
            return url
        scheme = parsed.scheme.lower()
        host = (parsed.hostname or "").lower()
        if not host:
            return url
        port = parsed.port
        netloc = host
        if port is not None and _DEFAULT_PORTS.get(scheme) != port:
            netloc = f"{host}:{port}"
        path = parsed.path or "/"
        if path != "/" and path.endswith("/"):
            path = path.rstrip("/") or "/"
        params = [
            (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
            if not _is_tracking_param(k)
        ]
        if params:
            params.sort(key=lambda kv: kv[0])
            return f"{scheme}://{netloc}{path}?{urlencode(params)}"
        return f"{scheme}://{netloc}{path}"
    except ValueError:
        # urlparse raises on malformed ports / IPv6 literals
        return url


@dataclass(frozen=True)
class DiscoveredFeed:
    url: str
    title: str
    type: FeedType = "rss"
    description: Optional[str] = None
    icon_url: Optional[str] = None  # filled in by services with domain knowledge

    @property
    def normalized_url(self) -> str:
        return normalize_feed_url(self.url)

    def with_icon(self, icon_url: Optional[str]) -> "DiscoveredFeed":
        """Return a copy carrying ``icon_url`` (unchanged if ``icon_url`` is empty)."""
        if not icon_url:
            return self
        return replace(self, icon_url=icon_url)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "title": self.title,
            "type": self.type,
            "description": self.description,
            "icon_url": self.icon_url,
        }
