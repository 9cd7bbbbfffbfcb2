"""Shared test doubles and sample feed documents."""
import threading
import time

from feedscout.models import DiscoveredFeed
from feedscout.validator import ValidationOutcome


RSS_SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel>
<title>Example Blog</title>
<link>https://example.com/</link>
<description>Posts about &lt;b&gt;things&lt;/b&gt;</description>
<item><title>Hello</title><link>https://example.com/hello</link></item>
</channel></rss>
"""

ATOM_SAMPLE = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
<title>Atom Example</title>
<subtitle>An Atom feed</subtitle>
<id>urn:uuid:60a76c80-d399-11d9-b93c-0003939e0af6</id>
<updated>2024-01-01T00:00:00Z</updated>
<entry><title>One</title><id>urn:uuid:1</id><updated>2024-01-01T00:00:00Z</updated></entry>
</feed>
"""

RDF_SAMPLE = b"""<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#" xmlns="http://purl.org/rss/1.0/">
<channel rdf:about="https://example.org/">
<title>RDF Example</title>
<link>https://example.org/</link>
<description>RSS 1.0</description>
</channel>
</rdf:RDF>
"""

JSON_FEED_SAMPLE = b"""{
  "version": "https://jsonfeed.org/version/1.1",
  "title": "JSON Example",
  "description": "A JSON Feed",
  "items": []
}"""

HTML_SAMPLE = b"""<!DOCTYPE html><html><head><title>Just a page</title></head>
<body><p>Nothing to see here.</p></body></html>"""


class FakeValidator:
    """Stands in for FeedValidator: answers from a dict, counts calls per URL.

    ``feeds`` maps a requested URL to a DiscoveredFeed or a full
    ValidationOutcome; anything else is "not a feed".
    """

    session = None

    def __init__(self, feeds=None, delay=0.0, fail=None):
        self.feeds = dict(feeds or {})
        self.delay = delay
        self.fail = set(fail or ())
        self.calls = []
        self._lock = threading.Lock()

    def check(self, url, timeout=None):
        with self._lock:
            self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)
        if url in self.fail:
            raise RuntimeError(f"validator blew up on {url}")
        hit = self.feeds.get(url)
        if isinstance(hit, ValidationOutcome):
            return hit
        if isinstance(hit, DiscoveredFeed):
            return ValidationOutcome(feed=hit, final_url=url)
        return ValidationOutcome(feed=None)

    def validate(self, url, timeout=None):
        return self.check(url, timeout).feed

    def call_count(self, url):
        with self._lock:
            return self.calls.count(url)

