"""Discovery service registry and orchestrator.

Single source of truth for the built-in services. Adding a new service only
requires:
1. Create the service module in feedscout/services/
2. Add one entry to SERVICES below

Execution order comes from each service's ``priority`` (lower runs first),
not from the order of SERVICES.
"""
from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Type

from feedscout.context import DEFAULT_MAX_WORKERS, DiscoveryContext
from feedscout.models import DiscoveredFeed, normalize_feed_url
from feedscout.services.base import DiscoveryService
from feedscout.telemetry import NullTelemetry, TelemetryAdapter
from feedscout.validator import FeedValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceEntry:
    """Metadata for a registered discovery service."""
    key: str                    # CLI flag name, e.g. "reddit"
    cls_path: str               # Dotted import path, e.g. "feedscout.services.reddit.RedditDiscoveryService"
    display_name: str           # Human-friendly name

    @property
    def flag_name(self) -> str:
        """CLI --no-<key> flag."""
        return f"no_{self.key}"

    def load_class(self) -> Type[DiscoveryService]:
        """Lazily import and return the service class."""
        module_path, class_name = self.cls_path.rsplit(".", 1)
        mod = importlib.import_module(module_path)
        return getattr(mod, class_name)


# ── Registry ──────────────────────────────────────────────────────────
SERVICES: List[ServiceEntry] = [
    ServiceEntry("apple",    "feedscout.services.apple.AppleDiscoveryService",       "Apple Podcasts"),
    ServiceEntry("reddit",   "feedscout.services.reddit.RedditDiscoveryService",     "Reddit"),
    ServiceEntry("standard", "feedscout.services.standard.StandardDiscoveryService", "Standard"),
]

# Quick lookups
_BY_KEY: Dict[str, ServiceEntry] = {s.key: s for s in SERVICES}


def get_all_keys() -> List[str]:
    """Return all registered service keys."""
    return [s.key for s in SERVICES]


def get_entry(key: str) -> Optional[ServiceEntry]:
    """Look up a service entry by key."""
    return _BY_KEY.get(key)


def build_services(*, disabled: Optional[set] = None,
                   timeouts: Optional[Dict[str, float]] = None) -> List[DiscoveryService]:
    """Instantiate all enabled services.

    Args:
        disabled: Set of service keys to skip (e.g. {"reddit"}).
        timeouts: Timeout attributes to set on each service that has them,
            e.g. {"page_timeout": 15, "metadata_timeout": 3}.
    """
    disabled = disabled or set()
    result = []
    for entry in SERVICES:
        if entry.key in disabled:
            continue
        svc = entry.load_class()()
        for attr, value in (timeouts or {}).items():
            if value is not None and hasattr(svc, attr):
                setattr(svc, attr, value)
        result.append(svc)
    return result


def dedupe_feeds(feeds: Iterable[DiscoveredFeed]) -> List[DiscoveredFeed]:
    """Drop feeds whose normalized URL was already seen; the first occurrence wins."""
    seen = set()
    unique = []
    for feed in feeds:
        key = normalize_feed_url(feed.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(feed)
    return unique


class DiscoveryRegistry:
    """Runs discovery services in priority order and assembles the result."""

    def __init__(self, services: Optional[Iterable[DiscoveryService]] = None,
                 telemetry: Optional[TelemetryAdapter] = None,
                 validator: Optional[FeedValidator] = None,
                 max_workers: int = DEFAULT_MAX_WORKERS):
        # sorted() is stable, so equal priorities keep their registration order
        self.services: List[DiscoveryService] = sorted(services or [], key=lambda s: s.priority)
        self.telemetry = telemetry or NullTelemetry()
        self.validator = validator or FeedValidator()
        self.max_workers = max_workers

    def register(self, service: DiscoveryService) -> None:
        self.services.append(service)
        self.services.sort(key=lambda s: s.priority)

    def new_context(self) -> DiscoveryContext:
        return DiscoveryContext(self.validator, telemetry=self.telemetry, max_workers=self.max_workers)

    def discover(self, url: str) -> List[DiscoveredFeed]:
        """Discover feeds for ``url``.

        Services run in ascending priority. Once one returns feeds, later
        services are skipped. A service that raises is reported and treated
        as having found nothing. An empty list means no feeds; turning that
        into an error is up to the caller.
        """
        attrs = {"url": url, "service_count": len(self.services)}
        with self.telemetry.span("feed.discovery", attrs) as span, self.new_context() as context:
            self.telemetry.breadcrumb(f"Starting feed discovery for {url}", attrs)
            collected: List[DiscoveredFeed] = []

            for service in self.services:
                service_name = type(service).__name__

                if not service.can_handle(url):
                    self.telemetry.breadcrumb(f"Service {service_name} cannot handle URL",
                                              {"service": service_name, "url": url}, level="debug")
                    continue

                self.telemetry.breadcrumb(f"Trying service {service_name}",
                                          {"service": service_name, "priority": service.priority})
                try:
                    feeds = service.discover(url, context)
                except Exception as e:
                    logger.warning(f"[Registry] {service_name} failed for {url}: {e}")
                    span.set_attribute(f"service_{service_name}_failed", True)
                    self.telemetry.capture_exception(e, {
                        "service": service_name,
                        "operation": "feed_discovery_service",
                        "url": url,
                        "service_priority": service.priority,
                    })
                    continue

                if feeds:
                    collected.extend(feeds)
                    span.set_attribute("service_used", service_name)
                    self.telemetry.breadcrumb(f"Service {service_name} found {len(feeds)} feed(s)", {
                        "service": service_name,
                        "feeds_found": len(feeds),
                        "feed_urls": [f.url for f in feeds],
                    })
                    break

            result = dedupe_feeds(collected)
            span.set_attribute("feeds_found", len(result))
            span.set_attribute("validations", context.validation_count)
            if result:
                span.set_status(True)
            else:
                span.set_status(False, "No feeds found")
                self.telemetry.breadcrumb("No feeds found after trying all services", {
                    "url": url,
                    "services_tried": [type(s).__name__ for s in self.services],
                })
            logger.info(f"[Registry] {url}: {len(result)} feed(s) after {context.validation_count} validation(s)")
            return result


def create_default_registry(*, telemetry: Optional[TelemetryAdapter] = None,
                            disabled: Optional[set] = None,
                            validator: Optional[FeedValidator] = None,
                            timeouts: Optional[Dict[str, float]] = None,
                            max_workers: int = DEFAULT_MAX_WORKERS) -> DiscoveryRegistry:
    """Registry with every built-in service except the ``disabled`` keys."""
    return DiscoveryRegistry(build_services(disabled=disabled, timeouts=timeouts), telemetry=telemetry,
                             validator=validator, max_workers=max_workers)
