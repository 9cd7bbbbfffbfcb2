"""Per-call discovery state shared by every service.

One :class:`DiscoveryContext` lives for exactly one top-level discovery call.
It memoizes validation outcomes by normalized URL and coalesces concurrent
probes of the same URL onto a single in-flight request, so the validator runs
at most once per normalized URL no matter how many services guess it.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional

from feedscout.models import DiscoveredFeed, normalize_feed_url
from feedscout.telemetry import NullTelemetry, TelemetryAdapter
from feedscout.validator import FeedValidator, ValidationOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 16


class DiscoveryContext:
    def __init__(self, validator: Optional[FeedValidator] = None,
                 telemetry: Optional[TelemetryAdapter] = None,
                 max_workers: int = DEFAULT_MAX_WORKERS):
        self.validator = validator or FeedValidator()
        self.telemetry = telemetry or NullTelemetry()
        self.validation_count = 0

        self._lock = threading.Lock()
        self._memo: Dict[str, Optional[DiscoveredFeed]] = {}
        self._in_flight: Dict[str, Future] = {}
        # normalized URL (requested or redirect target) -> normalized URL of the feed that claimed it
        self._claimed: Dict[str, str] = {}
        self._feed_ids: Dict[str, str] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="feedscout")
        self._closed = False

    def __enter__(self) -> "DiscoveryContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        """Stop accepting work; queued probes are cancelled, running ones finish on their own."""
        if not self._closed:
            self._closed = True
            self._executor.shutdown(wait=False, cancel_futures=True)

    @property
    def seen_urls(self) -> frozenset:
        """Normalized URLs whose validation has finished."""
        with self._lock:
            return frozenset(self._memo)

    def validate_feed(self, url: str) -> Optional[DiscoveredFeed]:
        """Validate ``url`` once per normalized form; repeated calls reuse the outcome."""
        key = normalize_feed_url(url)
        with self._lock:
            if key in self._memo:
                return self._memo[key]
            pending = self._in_flight.get(key)
            if pending is None:
                pending = Future()
                self._in_flight[key] = pending
                self.validation_count += 1
                owner = True
            else:
                owner = False

        if not owner:
            logger.debug(f"[Context] joining in-flight probe for {url}")
            return pending.result()

        try:
            outcome = self.validator.check(url)
            feed = self._claim(key, outcome)
        except BaseException as e:
            # A failed probe counts as "not a feed" for every later caller
            with self._lock:
                self._memo[key] = None
                del self._in_flight[key]
            pending.set_exception(e)
            raise

        with self._lock:
            self._memo[key] = feed
            del self._in_flight[key]
        pending.set_result(feed)
        return feed

    def _claim(self, key: str, outcome: ValidationOutcome) -> Optional[DiscoveredFeed]:
        """Register a confirmed feed, or return None if another URL already claimed it."""
        feed = outcome.feed
        if feed is None:
            return None
        final_key = normalize_feed_url(outcome.final_url) if outcome.final_url else key
        with self._lock:
            for k in {key, final_key}:
                owner = self._claimed.get(k)
                if owner is not None and owner != key:
                    logger.debug(f"[Context] {feed.url} resolves to a feed already found via {owner}")
                    return None
            if outcome.feed_id:
                owner = self._feed_ids.get(outcome.feed_id)
                if owner is not None and owner != key:
                    logger.debug(f"[Context] {feed.url} has Atom id {outcome.feed_id} already found via {owner}")
                    return None
                self._feed_ids[outcome.feed_id] = key
            self._claimed[key] = key
            self._claimed[final_key] = key
        return feed

    def validate_many(self, urls: Iterable[str]) -> List[DiscoveredFeed]:
        """Validate ``urls`` in parallel and return the confirmed feeds in input order.

        Call this from the discovery thread, not from inside a task already
        running on this context's pool.
        """
        futures = [self._executor.submit(self.validate_feed, u) for u in urls]
        results = []
        for f in futures:
            feed = f.result()
            if feed is not None:
                results.append(feed)
        return results

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """Run a side task (e.g. an icon lookup) on the context's pool."""
        return self._executor.submit(fn, *args, **kwargs)
