"""
Batched HTTP fetcher.

Issues many requests concurrently over a bounded number of connections and
returns one decoded payload or error per URL, in input order.
"""

from collections import deque
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, TypeVar

import httpx
from typing_extensions import override

if TYPE_CHECKING:
    from loguru import Logger

from ..exceptions import DecodeError, FetchError, TransportError, UrlError
from ..interfaces import Fetcher
from ..logging_config import get_logger
from ..models import FetchResult
from .response_cache import ResponseCache

T = TypeVar("T")

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_CONNECTIONS = 4
USER_AGENT = "rally-standings/0.1"
PROGRESS_STEPS = 10  # log progress roughly every 10% of a batch


def download(client: httpx.Client, url: str) -> bytes:
    """
    Fetch one URL and return the response body.

    Pure worker function, safe to run in a thread pool.

    Raises:
        UrlError: If the URL is malformed or not http(s)
        TransportError: On connect, timeout, TLS or HTTP status failure
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise UrlError(url, f"invalid url: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise UrlError(url, "url must be absolute http(s)")

    try:
        response = client.get(parsed)
        _ = response.raise_for_status()
    except httpx.UnsupportedProtocol as e:
        raise UrlError(url, f"unsupported protocol: {e}") from e
    except httpx.HTTPStatusError as e:
        raise TransportError(url, f"http status {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise TransportError(url, f"{type(e).__name__}: {e}") from e
    return response.content


class BatchedFetcher(Fetcher[T]):
    """
    Fetcher that runs a batch of requests through a bounded thread pool.

    One control loop in the calling thread submits work, waits for the first
    completion, and writes each result to the slot named by the future's index
    token. Decoding and cache access happen in the control loop; workers only
    perform network I/O.
    """

    def __init__(
        self,
        decode: Callable[[str, bytes], T],
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        timeout: float = DEFAULT_TIMEOUT,
        cache: ResponseCache | None = None,
        client: httpx.Client | None = None,
        name: str = "fetcher",
    ):
        """
        Initialize batched fetcher.

        Args:
            decode: Turns (url, body) into a payload, raising DecodeError on mismatch
            max_connections: Maximum simultaneous requests
            timeout: Per-request timeout in seconds (ignored when client is given)
            cache: Optional response cache
            client: Optional shared httpx client; one is created per batch otherwise
            name: Label used in log messages
        """
        if max_connections <= 0:
            raise ValueError(f"max_connections must be positive, got {max_connections}")
        self.decode: Callable[[str, bytes], T] = decode
        self.max_connections: int = max_connections
        self.timeout: float = timeout
        self.cache: ResponseCache | None = cache
        self.client: httpx.Client | None = client
        self.name: str = name
        self.logger: Logger = get_logger(name)

    def _make_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            limits=httpx.Limits(max_connections=self.max_connections),
            headers={"User-Agent": USER_AGENT},
        )

    @override
    def fetch_all(self, urls: Sequence[str]) -> list[FetchResult[T]]:
        """Fetch and decode every URL; failures stay in their own slot."""
        total = len(urls)
        results: list[FetchResult[T] | None] = [None] * total
        if total == 0:
            return []

        self.logger.info(f"Fetching {total} urls with {self.max_connections} connections")
        progress_every = max(1, total // PROGRESS_STEPS)
        completed = 0

        pending = deque(enumerate(urls))
        client = self.client or self._make_client()
        try:
            with ThreadPoolExecutor(max_workers=self.max_connections) as executor:
                futures = dict[Future[bytes], int]()  # future -> index token

                while pending or futures:
                    # Keep every connection busy
                    while pending and len(futures) < self.max_connections:
                        token, url = pending.popleft()
                        cached = self._from_cache(url)
                        if cached is not None:
                            results[token] = cached
                            completed += 1
                            continue
                        future = executor.submit(download, client, url)
                        futures[future] = token

                    if not futures:
                        continue

                    done, _ = wait(futures.keys(), return_when=FIRST_COMPLETED)
                    for future in done:
                        token = futures.pop(future)
                        results[token] = self._complete(urls[token], future)
                        completed += 1
                        if completed % progress_every == 0 or completed == total:
                            self.logger.info(f"Progress: {completed}/{total} ({completed / total:.0%})")
        finally:
            if self.client is None:
                client.close()

        failed = sum(1 for r in results if r is not None and not r.ok)
        if failed:
            self.logger.warning(f"{failed}/{total} requests failed")
        return [r for r in results if r is not None]

    def _from_cache(self, url: str) -> FetchResult[T] | None:
        """Decode a cached body, or return None on a miss."""
        if self.cache is None:
            return None
        body = self.cache.get(url)
        if body is None:
            return None
        try:
            payload = self.decode(url, body)
        except DecodeError as e:
            self.logger.warning(f"Discarding stale cache entry: {e}")
            self.cache.discard(url)
            return None
        self.logger.debug(f"Cache hit: {url}")
        return FetchResult(url=url, payload=payload)

    def _complete(self, url: str, future: Future[bytes]) -> FetchResult[T]:
        """Turn a finished download into a result slot."""
        try:
            body = future.result()
            payload = self.decode(url, body)
        except FetchError as e:
            self.logger.warning(f"{type(e).__name__}: {e}")
            return FetchResult(url=url, error=e)

        if self.cache is not None:
            self.cache.put(url, body)
        return FetchResult(url=url, payload=payload)
