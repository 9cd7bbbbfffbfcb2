"""Shared utility functions."""
import html
import re
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup


def is_subdomain_of(domain: str, base_domain: str) -> bool:
    """True if ``domain`` equals ``base_domain`` or is one of its subdomains.

    >>> is_subdomain_of("podcasts.apple.com", "apple.com")
    True
    >>> is_subdomain_of("notapple.com", "apple.com")
    False
    """
    d = domain.lower().strip().rstrip(".")
    base = base_domain.lower().strip().rstrip(".")
    if not d or not base:
        return False
    return d == base or d.endswith(f".{base}")


def hostname_of(url: str) -> Optional[str]:
    """Lower-cased hostname of ``url``, or None when it cannot be parsed."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def strip_html(text: Optional[str]) -> str:
    """Reduce an HTML fragment to plain, whitespace-collapsed text."""
    if not text:
        return ""
    if "<" in text:
        text = BeautifulSoup(text, "html.parser").get_text(separator=" ", strip=True)
    else:
        text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()

