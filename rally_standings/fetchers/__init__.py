"""
Fetcher implementations.

Provides implementations of the Fetcher interface for retrieving upstream
leaderboard data.

Available implementations:
- BatchedFetcher: Concurrent HTTP fetching over a bounded thread pool, with
  per-slot error capture and an optional content-addressed response cache
"""

from .http_fetcher import BatchedFetcher
from .response_cache import ResponseCache

__all__ = ["BatchedFetcher", "ResponseCache"]
