"""Tests for Reddit discovery."""
import json
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeValidator
from feedscout.context import DiscoveryContext
from feedscout.errors import DeadlineExceeded
from feedscout.http import FetchResult
from feedscout.models import DiscoveredFeed
from feedscout.registry import DiscoveryRegistry
from feedscout.services.reddit import (
    RedditDiscoveryService,
    RedditTarget,
    build_feed_url,
    extract_identifier,
)
from feedscout.services.standard import StandardDiscoveryService
from feedscout.telemetry import NullTelemetry

FETCH = "feedscout.services.reddit.fetch_with_deadline"

ICON = "https://styles.redditmedia.com/t5_2rc7j/styles/communityIcon_abc.png"


def _about(data):
    return FetchResult(url="https://www.reddit.com/r/golang/about.json", status=200,
                       content=json.dumps({"kind": "t5", "data": data}).encode("utf-8"))


def _feed(url, title="r/golang"):
    return DiscoveredFeed(url=url, title=title)


class TestExtractIdentifier:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.reddit.com/r/golang", RedditTarget("subreddit", "golang")),
        ("https://www.reddit.com/r/golang/", RedditTarget("subreddit", "golang")),
        ("https://old.reddit.com/r/Python/comments/abc/title/", RedditTarget("subreddit", "Python")),
        ("https://reddit.com/r/ask_science-2", RedditTarget("subreddit", "ask_science-2")),
        ("https://www.reddit.com/user/spez", RedditTarget("user", "spez")),
        ("https://www.reddit.com/u/spez/", RedditTarget("user", "spez")),
    ])
    def test_valid(self, url, expected):
        assert extract_identifier(url) == expected

    @pytest.mark.parametrize("url", [
        "https://www.reddit.com/",
        "https://www.reddit.com/r/ab",                       # too short
        "https://www.reddit.com/r/" + "a" * 22,              # too long
        "https://www.reddit.com/user/" + "a" * 21,
        "https://www.reddit.com/r/bad.name",
        "https://www.reddit.com/r/café_news",                # ASCII names only
        "https://www.reddit.com/user/名前名前",
        "https://www.reddit.com/settings",
    ])
    def test_invalid(self, url):
        assert extract_identifier(url) is None

    def test_deterministic(self):
        url = "https://www.reddit.com/r/golang/top/?t=week"
        assert {extract_identifier(url) for _ in range(20)} == {RedditTarget("subreddit", "golang")}


class TestBuildFeedUrl:
    def test_subreddit_keeps_host(self):
        assert build_feed_url("https://old.reddit.com/r/golang/new") == "https://old.reddit.com/r/golang/.rss"

    def test_user(self):
        assert build_feed_url("https://www.reddit.com/u/spez") == "https://www.reddit.com/user/spez/.rss"

    def test_none_for_front_page(self):
        assert build_feed_url("https://www.reddit.com/") is None


class TestCanHandle:
    @pytest.mark.parametrize("url", [
        "https://reddit.com/r/golang",
        "https://www.reddit.com/r/golang",
        "https://old.reddit.com/r/golang",
        "https://WWW.Reddit.com/r/golang",
    ])
    def test_reddit_hosts(self, url):
        assert RedditDiscoveryService().can_handle(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/r/golang",
        "https://notreddit.com/r/golang",
        "https://reddit.com.evil.example/r/golang",
        "not a url",
    ])
    def test_other_hosts(self, url):
        assert not RedditDiscoveryService().can_handle(url)


class TestSubredditIcon:
    def test_community_icon_unescaped_and_stripped(self):
        resp = _about({"community_icon": ICON + "?width=256&amp;s=abc123", "icon_img": ""})
        with patch(FETCH, return_value=resp) as fetch:
            assert RedditDiscoveryService(metadata_timeout=2).get_subreddit_icon("golang") == ICON
        assert fetch.call_args[0] == ("https://www.reddit.com/r/golang/about.json", 2)

    def test_falls_back_to_icon_img(self):
        resp = _about({"community_icon": "", "icon_img": "https://b.thumbs.redditmedia.com/icon.png"})
        with patch(FETCH, return_value=resp):
            assert RedditDiscoveryService().get_subreddit_icon("golang") == "https://b.thumbs.redditmedia.com/icon.png"

    def test_no_icon(self):
        with patch(FETCH, return_value=_about({"community_icon": "", "icon_img": ""})):
            assert RedditDiscoveryService().get_subreddit_icon("golang") is None

    def test_timeout_returns_none(self):
        with patch(FETCH, side_effect=DeadlineExceeded("https://www.reddit.com/r/golang/about.json", "slow")):
            assert RedditDiscoveryService().get_subreddit_icon("golang") is None

    def test_bad_json_returns_none(self):
        resp = FetchResult(url="u", status=200, content=b"<html>blocked</html>")
        with patch(FETCH, return_value=resp):
            assert RedditDiscoveryService().get_subreddit_icon("golang") is None


class TestRedditDiscover:
    def test_subreddit_feed_with_icon(self):
        feed_url = "https://www.reddit.com/r/golang/.rss"
        v = FakeValidator({feed_url: _feed(feed_url)})
        with patch(FETCH, return_value=_about({"community_icon": ICON})), DiscoveryContext(v) as ctx:
            feeds = RedditDiscoveryService().discover("https://www.reddit.com/r/golang", ctx)
        assert len(feeds) == 1
        assert feeds[0].url == feed_url
        assert feeds[0].icon_url == ICON

    def test_icon_failure_keeps_feed(self):
        feed_url = "https://www.reddit.com/r/golang/.rss"
        v = FakeValidator({feed_url: _feed(feed_url)})
        with patch(FETCH, side_effect=DeadlineExceeded("about", "slow")), DiscoveryContext(v) as ctx:
            feeds = RedditDiscoveryService().discover("https://www.reddit.com/r/golang", ctx)
        assert [f.url for f in feeds] == [feed_url]
        assert feeds[0].icon_url is None

    def test_user_feed_skips_icon_lookup(self):
        feed_url = "https://www.reddit.com/user/spez/.rss"
        v = FakeValidator({feed_url: _feed(feed_url, "overview for spez")})
        with patch(FETCH) as fetch, DiscoveryContext(v) as ctx:
            feeds = RedditDiscoveryService().discover("https://www.reddit.com/u/spez", ctx)
        assert [f.url for f in feeds] == [feed_url]
        fetch.assert_not_called()

    def test_invalid_feed_returns_empty(self):
        with patch(FETCH, return_value=_about({})), DiscoveryContext(FakeValidator()) as ctx:
            assert RedditDiscoveryService().discover("https://www.reddit.com/r/golang", ctx) == []

    def test_front_page_returns_empty(self):
        v = FakeValidator()
        with DiscoveryContext(v) as ctx:
            assert RedditDiscoveryService().discover("https://www.reddit.com/", ctx) == []
        assert v.calls == []

    def test_validator_crash_is_captured(self):
        feed_url = "https://www.reddit.com/r/golang/.rss"
        telemetry = MagicMock(wraps=NullTelemetry())
        v = FakeValidator(fail={feed_url})
        with patch(FETCH, return_value=_about({})), DiscoveryContext(v, telemetry=telemetry) as ctx:
            assert RedditDiscoveryService().discover("https://www.reddit.com/r/golang", ctx) == []
        telemetry.capture_exception.assert_called_once()
        assert telemetry.capture_exception.call_args[0][1]["operation"] == "reddit_discovery"


class TestRedditScenario:
    def test_standard_service_never_runs(self):
        feed_url = "https://www.reddit.com/r/golang/.rss"
        v = FakeValidator({feed_url: _feed(feed_url)})
        standard = StandardDiscoveryService()
        standard.discover = MagicMock(return_value=[])
        registry = DiscoveryRegistry([standard, RedditDiscoveryService()], validator=v)
        with patch(FETCH, return_value=_about({"community_icon": ICON})):
            feeds = registry.discover("https://www.reddit.com/r/golang")
        assert [(f.url, f.icon_url) for f in feeds] == [(feed_url, ICON)]
        standard.discover.assert_not_called()
        assert v.calls == [feed_url]
