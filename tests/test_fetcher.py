"""Tests for SourceFetcher retry and caching behaviour against a fake session."""

import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
import requests

from grantdb.core.errors import SourceFetchError
from grantdb.ingest.fetcher import SourceFetcher
from grantdb.storage.fetch_cache import FetchCache


URL = "https://example.org/grants.csv"


def _response(status=200, text="id,amount\n1,100\n"):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = "OK" if response.ok else "Error"
    response.text = text
    response.headers = {"content-type": "text/csv"}
    return response


def _fetcher(responses, **kwargs):
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = responses
    sleeps = []
    fetcher = SourceFetcher(session=session, min_interval=0, sleep=sleeps.append, **kwargs)
    return fetcher, session, sleeps


class TestFetchText:

    def test_success(self):
        fetcher, session, sleeps = _fetcher([_response()])
        assert fetcher.fetch_text(URL).startswith("id,amount")
        session.get.assert_called_once_with(URL, timeout=fetcher.timeout)
        assert sleeps == []

    def test_browser_headers_set(self):
        _, session, _ = _fetcher([])
        assert "User-Agent" in session.headers

    def test_retries_server_errors(self):
        fetcher, session, sleeps = _fetcher(
            [_response(503), _response(502), _response()], max_retries=3, backoff=2.0
        )
        assert fetcher.fetch_text(URL)
        assert session.get.call_count == 3
        assert sleeps == [2.0, 4.0]

    def test_retries_connection_errors(self):
        fetcher, session, _ = _fetcher(
            [requests.ConnectionError("reset"), _response()], max_retries=2
        )
        assert fetcher.fetch_text(URL)
        assert session.get.call_count == 2

    def test_gives_up_after_max_retries(self):
        fetcher, session, sleeps = _fetcher([_response(500)] * 3, max_retries=3, backoff=1.0)
        with pytest.raises(SourceFetchError) as exc:
            fetcher.fetch_text(URL)
        assert exc.value.status_code == 500
        assert session.get.call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_client_error_not_retried(self):
        fetcher, session, sleeps = _fetcher([_response(404)], max_retries=3)
        with pytest.raises(SourceFetchError) as exc:
            fetcher.fetch_text(URL)
        assert exc.value.status_code == 404
        assert session.get.call_count == 1
        assert sleeps == []

    def test_timeout_raises_fetch_error(self):
        fetcher, _, _ = _fetcher([requests.Timeout("slow")], max_retries=1)
        with pytest.raises(SourceFetchError) as exc:
            fetcher.fetch_text(URL)
        assert "Timeout" in str(exc.value)


class TestRateLimit:

    def test_concurrent_requests_to_one_domain_are_spaced(self):
        stamps = []

        def get(url, timeout):
            stamps.append(time.monotonic())
            return _response()

        session = MagicMock()
        session.headers = {}
        session.get.side_effect = get
        fetcher = SourceFetcher(session=session, min_interval=0.05)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(fetcher.fetch_text, [URL] * 4))

        stamps.sort()
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert len(gaps) == 3
        assert all(gap >= 0.04 for gap in gaps)

    def test_domains_tracked_separately(self):
        fetcher, _, sleeps = _fetcher([_response(), _response()])
        fetcher.min_interval = 60
        fetcher.fetch_text("https://a.example.org/x.csv")
        fetcher.fetch_text("https://b.example.org/y.csv")
        assert sleeps == []
        assert set(fetcher.last_request_time) == {"a.example.org", "b.example.org"}


class TestFetchCache:

    def test_cache_hit_skips_network(self, tmp_path):
        cache = FetchCache(tmp_path / "cache.db", ttl_hours=1)
        fetcher, session, _ = _fetcher([_response(text="cached body")], cache=cache)

        assert fetcher.fetch_text(URL) == "cached body"
        assert fetcher.fetch_text(URL) == "cached body"
        assert session.get.call_count == 1

    def test_expired_entry_ignored(self, tmp_path):
        cache = FetchCache(tmp_path / "cache.db", ttl_hours=0)
        cache.set(URL, "old")
        assert cache.get(URL) is None

    def test_cleanup_expired(self, tmp_path):
        cache = FetchCache(tmp_path / "cache.db", ttl_hours=0)
        cache.set(URL, "old")
        assert cache.cleanup_expired() == 1
