"""
Tests for BatchedFetcher implementation.

Focus on slot correlation, per-slot failures and the response cache.
"""

import json
import tempfile
import threading
import time
from pathlib import Path

import httpx

from rally_standings.exceptions import DecodeError, TransportError, UrlError
from rally_standings.fetchers.http_fetcher import BatchedFetcher
from rally_standings.fetchers.response_cache import ResponseCache
from rally_standings.leaderboard_api import decode_leaderboard, decode_rank


def rank_url(i: int) -> str:
    return f"https://leaderboard.test/rank/{i}"


def index_of(request: httpx.Request) -> int:
    return int(request.url.path.rsplit("/", 1)[-1])


class CountingTransport(httpx.MockTransport):
    """Mock transport that counts requests."""

    def __init__(self, handler):
        self.calls = 0
        self._lock = threading.Lock()

        def counted(request: httpx.Request) -> httpx.Response:
            with self._lock:
                self.calls += 1
            return handler(request)

        super().__init__(counted)


def rank_handler(request: httpx.Request) -> httpx.Response:
    """Answer /rank/<i> with rank i + 1."""
    return httpx.Response(200, json={"result": 1, "rank": index_of(request) + 1})


class TestBatchedFetcher:
    """Test BatchedFetcher behavior through public interface."""

    def test_results_follow_input_order_despite_arrival_order(self) -> None:
        """Later URLs answering first must still land in their own slot."""
        # Arrange
        count = 6

        def handler(request: httpx.Request) -> httpx.Response:
            i = index_of(request)
            time.sleep((count - i) * 0.01)
            return rank_handler(request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BatchedFetcher(decode_rank, max_connections=count, client=client)
        urls = [rank_url(i) for i in range(count)]

        # Act
        results = fetcher.fetch_all(urls)

        # Assert
        assert len(results) == count
        assert [r.url for r in results] == urls
        assert [r.payload for r in results] == [i + 1 for i in range(count)]
        assert all(r.ok for r in results)

    def test_one_failing_slot_does_not_affect_others(self) -> None:
        """URL k failing leaves exactly slot k as an error."""
        # Arrange
        failing = 2

        def handler(request: httpx.Request) -> httpx.Response:
            if index_of(request) == failing:
                raise httpx.ConnectError("connection refused", request=request)
            return rank_handler(request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BatchedFetcher(decode_rank, max_connections=2, client=client)
        urls = [rank_url(i) for i in range(5)]

        # Act
        results = fetcher.fetch_all(urls)

        # Assert
        assert len(results) == 5
        assert isinstance(results[failing].error, TransportError)
        assert results[failing].payload is None
        for i, result in enumerate(results):
            if i != failing:
                assert result.ok, f"slot {i} should succeed"
                assert result.payload == i + 1

    def test_http_status_error_is_transport_error(self) -> None:
        """Non-2xx responses are reported as transport errors."""
        # Arrange
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        fetcher = BatchedFetcher(decode_rank, client=client)

        # Act
        results = fetcher.fetch_all([rank_url(0)])

        # Assert
        assert isinstance(results[0].error, TransportError)
        assert "503" in str(results[0].error)

    def test_timeout_is_transport_error(self) -> None:
        """Timeouts are confined to their slot."""
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BatchedFetcher(decode_rank, client=client)

        # Act
        results = fetcher.fetch_all([rank_url(0)])

        # Assert
        assert isinstance(results[0].error, TransportError)

    def test_malformed_urls_are_url_errors(self) -> None:
        """Relative and non-http URLs fail without a request being made."""
        # Arrange
        transport = CountingTransport(rank_handler)
        client = httpx.Client(transport=transport)
        fetcher = BatchedFetcher(decode_rank, client=client)

        # Act
        results = fetcher.fetch_all(["not a url", "ftp://leaderboard.test/rank/1", rank_url(4)])

        # Assert
        assert isinstance(results[0].error, UrlError)
        assert isinstance(results[1].error, UrlError)
        assert results[2].payload == 5
        assert transport.calls == 1

    def test_schema_mismatch_is_decode_error(self) -> None:
        """Bodies that are not JSON or miss fields are decode errors."""
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            if index_of(request) == 0:
                return httpx.Response(200, content=b"<html>maintenance</html>")
            return httpx.Response(200, json={"leaderboard": [{"local_rank": 1}]})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BatchedFetcher(decode_leaderboard, client=client)

        # Act
        results = fetcher.fetch_all([rank_url(0), rank_url(1)])

        # Assert
        assert isinstance(results[0].error, DecodeError)
        assert isinstance(results[1].error, DecodeError)

    def test_deeply_nested_body_fails_only_its_slot(self) -> None:
        """A body too deep to parse is a decode error, not a batch failure."""
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            if index_of(request) == 1:
                return httpx.Response(200, content=b"[" * 200000 + b"]" * 200000)
            return rank_handler(request)
        client = httpx.Client(transport=httpx.MockTransport(handler))
        fetcher = BatchedFetcher(decode_rank, client=client)

        # Act
        results = fetcher.fetch_all([rank_url(i) for i in range(3)])

        # Assert
        assert len(results) == 3
        assert results[0].payload == 1
        assert isinstance(results[1].error, DecodeError)
        assert results[2].payload == 3

    def test_empty_batch(self) -> None:
        """An empty batch returns an empty list."""
        fetcher = BatchedFetcher(decode_rank, client=httpx.Client(transport=httpx.MockTransport(rank_handler)))
        assert fetcher.fetch_all([]) == []

    def test_cache_hit_skips_network_and_returns_equal_results(self) -> None:
        """A second batch through the same cache makes no requests."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            cache = ResponseCache(Path(temp_dir) / "cache")
            transport = CountingTransport(rank_handler)
            client = httpx.Client(transport=transport)
            urls = [rank_url(i) for i in range(4)]

            # Act
            first = BatchedFetcher(decode_rank, cache=cache, client=client).fetch_all(urls)
            calls_after_first = transport.calls
            second = BatchedFetcher(decode_rank, cache=cache, client=client).fetch_all(urls)

            # Assert
            assert calls_after_first == 4
            assert transport.calls == 4, "Cached URLs should not be requested again"
            assert second == first, "A cache hit returns exactly what the network returned"

    def test_failed_responses_are_not_cached(self) -> None:
        """Only bodies that decoded are written to the cache."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            cache = ResponseCache(Path(temp_dir))
            client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"{}")))
            fetcher = BatchedFetcher(decode_rank, cache=cache, client=client)

            # Act
            results = fetcher.fetch_all([rank_url(0)])

            # Assert
            assert isinstance(results[0].error, DecodeError)
            assert cache.get(rank_url(0)) is None

    def test_stale_cache_entry_is_refetched(self) -> None:
        """A cache entry that no longer decodes is treated as a miss."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            cache = ResponseCache(Path(temp_dir))
            cache.put(rank_url(3), json.dumps({"unexpected": True}).encode())
            transport = CountingTransport(rank_handler)
            fetcher = BatchedFetcher(decode_rank, cache=cache, client=httpx.Client(transport=transport))

            # Act
            results = fetcher.fetch_all([rank_url(3)])

            # Assert
            assert results[0].payload == 4
            assert transport.calls == 1
            cached = cache.get(rank_url(3))
            assert cached is not None
            assert decode_rank(rank_url(3), cached) == 4

    def test_cache_key_is_url_hash(self) -> None:
        """Cache files are named by the SHA-256 of the URL."""
        with tempfile.TemporaryDirectory() as temp_dir:
            cache = ResponseCache(Path(temp_dir))
            path = cache.path_for("https://leaderboard.test/a")
            assert path.parent == Path(temp_dir)
            assert len(path.stem) == 64
            assert cache.path_for("https://leaderboard.test/b") != path
