"""HTTP plumbing: shared session, default headers and fetch-with-deadline.

Every network call in feedscout goes through :func:`fetch_with_deadline`, so
timeouts and connection release behave the same for feed probes, HTML pages
and metadata lookups.
"""
import json
import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from feedscout import __version__
from feedscout.errors import DeadlineExceeded, FetchError, ResponseTooLarge

logger = logging.getLogger(__name__)

# Deadlines, in seconds
FEED_TIMEOUT = 8.0        # one validation probe
PAGE_TIMEOUT = 10.0       # full HTML pages and directory lookups
METADATA_TIMEOUT = 5.0    # icon / about lookups

MAX_BODY_BYTES = 5 * 1024 * 1024
_CHUNK_SIZE = 16 * 1024

USER_AGENT = f"feedscout/{__version__} (Feed Discovery; +https://github.com/feedscout/feedscout)"

HEADERS: Dict[str, str] = {"User-Agent": USER_AGENT}

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/feed+json, application/xml, text/xml, */*"

# Some sites only serve <link rel="alternate"> markup to things that look like browsers
BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml",
}

# Shared session for connection pooling (TCP keep-alive, connection reuse)
_session: Optional[requests.Session] = None
_session_lock = threading.Lock()


def get_session() -> requests.Session:
    """Return a shared requests.Session for connection pooling."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                s = requests.Session()
                # Sized for one discovery call fanning out ~25 probes
                adapter = requests.adapters.HTTPAdapter(
                    pool_connections=20,
                    pool_maxsize=20,
                    max_retries=0,  # a failed probe is "not a feed", never retried
                )
                s.mount("https://", adapter)
                s.mount("http://", adapter)
                _session = s
    return _session


@dataclass
class FetchResult:
    url: str                  # final URL after redirects
    status: int
    content: bytes
    encoding: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "").split(";")[0].strip().lower()

    @property
    def text(self) -> str:
        for enc in (self.encoding, "utf-8"):
            if not enc:
                continue
            try:
                return self.content.decode(enc)
            except (LookupError, UnicodeDecodeError):
                continue
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)


def fetch_with_deadline(
    url: str,
    timeout: float,
    headers: Optional[Mapping[str, str]] = None,
    max_bytes: int = MAX_BODY_BYTES,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """GET ``url`` and read the whole body before ``timeout`` seconds elapse.

    The body is streamed under a watchdog timer that shuts the socket down
    when the deadline passes, so a server sending a few bytes at a time cannot
    hold the probe open past ``timeout``. The response is always closed, even
    mid-read, and never left half-read in the pool.

    Raises:
        DeadlineExceeded: connect, read or total time overran the deadline.
        ResponseTooLarge: body larger than ``max_bytes``.
        FetchError: any other network failure or a non-2xx status.
    """
    session = session or get_session()
    deadline = time.monotonic() + timeout
    req_headers = {**HEADERS, **(headers or {})}

    try:
        resp = session.get(url, headers=req_headers, timeout=(timeout, timeout),
                           stream=True, allow_redirects=True)
    except requests.Timeout as e:
        raise DeadlineExceeded(url, f"timed out after {timeout:.1f}s") from e
    except requests.RequestException as e:
        raise FetchError(url, str(e)) from e

    expired = threading.Event()
    watchdog = None
    try:
        if not 200 <= resp.status_code < 300:
            raise FetchError(url, status=resp.status_code)

        declared = resp.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise ResponseTooLarge(url, f"Content-Length {declared} exceeds {max_bytes} bytes")

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise DeadlineExceeded(url, f"headers not received within {timeout:.1f}s")

        # Socket timeouts only bound each read; a server trickling bytes
        # would never trip them, so cut the connection when time runs out
        def _expire():
            expired.set()
            _abort(resp)

        watchdog = threading.Timer(remaining, _expire)
        watchdog.daemon = True
        watchdog.start()

        chunks = []
        size = 0
        try:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if expired.is_set() or time.monotonic() > deadline:
                    raise DeadlineExceeded(url, f"body not read within {timeout:.1f}s")
                size += len(chunk)
                if size > max_bytes:
                    raise ResponseTooLarge(url, f"body exceeds {max_bytes} bytes")
                chunks.append(chunk)
        except FetchError:
            raise
        except Exception as e:
            # An aborted read surfaces as whatever urllib3 or the socket raises
            if expired.is_set() or time.monotonic() > deadline or isinstance(e, requests.Timeout):
                raise DeadlineExceeded(url, f"body not read within {timeout:.1f}s") from e
            if isinstance(e, requests.RequestException):
                raise FetchError(url, str(e)) from e
            raise
        if expired.is_set():
            # Aborted between reads; the body is truncated
            raise DeadlineExceeded(url, f"body not read within {timeout:.1f}s")

        logger.debug(f"[HTTP] GET {url} -> {resp.status_code} ({size} bytes)")
        return FetchResult(
            url=resp.url or url,
            status=resp.status_code,
            content=b"".join(chunks),
            encoding=resp.encoding,
            headers=CaseInsensitiveDict(resp.headers),
        )
    finally:
        if watchdog is not None:
            watchdog.cancel()
        resp.close()


def _abort(resp: requests.Response) -> None:
    """Unblock a reader stuck in ``recv`` on ``resp``'s socket (runs on the watchdog thread)."""
    sock = _underlying_socket(resp)
    if sock is None:
        resp.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"[HTTP] shutdown on expired response failed: {e}")


def _underlying_socket(resp: requests.Response) -> Optional[socket.socket]:
    raw = resp.raw
    conn = getattr(raw, "_connection", None)
    sock = getattr(conn, "sock", None)
    if sock is not None:
        return sock
    # http.client keeps the socket behind fp (BufferedReader -> SocketIO)
    fp = getattr(getattr(raw, "_fp", None), "fp", None)
    return getattr(getattr(fp, "raw", None), "_sock", None)
