"""Tests for the shared session and fetch_with_deadline."""
import socket
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from feedscout.errors import DeadlineExceeded, FetchError, ResponseTooLarge
from feedscout.http import HEADERS, USER_AGENT, FetchResult, fetch_with_deadline, get_session


def _response(status=200, chunks=(b"<rss/>",), headers=None, url="https://example.com/feed"):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {"Content-Type": "application/rss+xml; charset=utf-8"}
    resp.url = url
    resp.encoding = "utf-8"
    resp.iter_content.return_value = iter(chunks)
    return resp


def _session(resp=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value = resp
    return session


class TestSessionPool:
    def test_singleton(self):
        assert get_session() is get_session()

    def test_has_pooled_adapters(self):
        adapter = get_session().get_adapter("https://example.com")
        assert adapter._pool_connections == 20
        assert adapter._pool_maxsize == 20
        assert adapter.max_retries.total == 0

    def test_thread_safe(self):
        results = []

        def grab():
            results.append(id(get_session()))

        threads = [threading.Thread(target=grab) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(results)) == 1


class TestFetchWithDeadline:
    def test_reads_body(self):
        resp = _response(chunks=(b"<rss>", b"</rss>"), url="https://example.com/feed.xml")
        result = fetch_with_deadline("https://example.com/feed", 5, session=_session(resp))
        assert isinstance(result, FetchResult)
        assert result.content == b"<rss></rss>"
        assert result.url == "https://example.com/feed.xml"
        assert result.status == 200
        assert result.content_type == "application/rss+xml"
        resp.close.assert_called_once()

    def test_sends_user_agent_and_extra_headers(self):
        session = _session(_response())
        fetch_with_deadline("https://example.com/feed", 5, headers={"Accept": "text/xml"}, session=session)
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["User-Agent"] == USER_AGENT
        assert kwargs["headers"]["Accept"] == "text/xml"
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == (5, 5)

    def test_default_headers_not_mutated(self):
        before = dict(HEADERS)
        fetch_with_deadline("https://example.com/feed", 5, headers={"Accept": "x"}, session=_session(_response()))
        assert HEADERS == before

    def test_non_2xx_raises_with_status(self):
        resp = _response(status=404)
        with pytest.raises(FetchError) as exc:
            fetch_with_deadline("https://example.com/feed", 5, session=_session(resp))
        assert exc.value.status == 404
        resp.close.assert_called_once()

    def test_connect_timeout_is_deadline_exceeded(self):
        session = _session(exc=requests.ConnectTimeout("slow"))
        with pytest.raises(DeadlineExceeded):
            fetch_with_deadline("https://example.com/feed", 1, session=session)

    def test_connection_error_is_fetch_error(self):
        session = _session(exc=requests.ConnectionError("refused"))
        with pytest.raises(FetchError) as exc:
            fetch_with_deadline("https://example.com/feed", 1, session=session)
        assert not isinstance(exc.value, DeadlineExceeded)

    def test_declared_length_too_large(self):
        resp = _response(headers={"Content-Length": "999999"})
        with pytest.raises(ResponseTooLarge):
            fetch_with_deadline("https://example.com/feed", 5, max_bytes=1000, session=_session(resp))
        resp.close.assert_called_once()

    def test_streamed_body_too_large(self):
        resp = _response(chunks=(b"x" * 600, b"x" * 600))
        with pytest.raises(ResponseTooLarge):
            fetch_with_deadline("https://example.com/feed", 5, max_bytes=1000, session=_session(resp))
        resp.close.assert_called_once()

    def test_deadline_during_body_closes_response(self):
        resp = _response(chunks=(b"a", b"b", b"c"))
        # Deadline computed at t=0 + 5s; headers at t=1, the first chunk at t=10
        with patch("feedscout.http.time") as fake_time:
            fake_time.monotonic.side_effect = [0.0, 1.0, 10.0, 10.0]
            with pytest.raises(DeadlineExceeded):
                fetch_with_deadline("https://example.com/feed", 5, session=_session(resp))
        resp.close.assert_called_once()

    def test_read_timeout_while_streaming(self):
        resp = _response()
        resp.iter_content.side_effect = requests.ReadTimeout("stalled")
        with pytest.raises(DeadlineExceeded):
            fetch_with_deadline("https://example.com/feed", 5, session=_session(resp))
        resp.close.assert_called_once()

    def test_deadline_already_passed_when_headers_arrive(self):
        resp = _response()
        with patch("feedscout.http.time") as fake_time:
            fake_time.monotonic.side_effect = [0.0, 6.0]
            with pytest.raises(DeadlineExceeded):
                fetch_with_deadline("https://example.com/feed", 5, session=_session(resp))
        resp.iter_content.assert_not_called()
        resp.close.assert_called_once()


@pytest.fixture
def trickle_server():
    """Local server that promises 100 kB, then sends 10 bytes every 0.25 s."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(5)
    stop = threading.Event()

    def serve():
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            conn.recv(65536)
            conn.sendall(b"HTTP/1.1 200 OK\r\n"
                         b"Content-Type: application/rss+xml\r\n"
                         b"Content-Length: 100000\r\n\r\n")
            for _ in range(60):
                if stop.wait(0.25):
                    return
                try:
                    conn.sendall(b"<!-- x -->")
                except OSError:
                    return

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{listener.getsockname()[1]}/feed.xml"
    stop.set()
    listener.close()
    thread.join(timeout=2)


class TestSlowServer:
    def test_trickling_body_stops_at_deadline(self, trickle_server):
        session = requests.Session()
        started = time.monotonic()
        try:
            with pytest.raises(DeadlineExceeded):
                fetch_with_deadline(trickle_server, 1.0, session=session)
        finally:
            session.close()
        assert time.monotonic() - started < 2.5


class TestFetchResult:
    def test_text_falls_back_to_utf8(self):
        r = FetchResult(url="u", status=200, content="héllo".encode("utf-8"), encoding="bogus-codec")
        assert r.text == "héllo"

    def test_json(self):
        r = FetchResult(url="u", status=200, content=b'{"a": 1}', encoding=None)
        assert r.json() == {"a": 1}

    def test_json_invalid_raises_value_error(self):
        r = FetchResult(url="u", status=200, content=b"<html>", encoding=None)
        with pytest.raises(ValueError):
            r.json()
