"""
Abstract base classes defining the interfaces for the rally standings system.

All interfaces are synchronous; only the fetcher runs work concurrently, and it
blocks until its whole batch has finished.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence, Set as AbstractSet
from pathlib import Path
from typing import Generic, TypeVar

from .models import FetchResult, LeaderboardEntry, Snapshot, Stage, StageOutcome

T = TypeVar("T")


class Fetcher(ABC, Generic[T]):
    """Interface for retrieving and decoding a batch of URLs."""

    @abstractmethod
    def fetch_all(self, urls: Sequence[str]) -> list[FetchResult[T]]:
        """
        Fetch and decode every URL.

        May block until the whole batch has finished.

        Args:
            urls: URLs to fetch

        Returns:
            One FetchResult per URL, in input order. A failure is recorded
            in its own slot and never raised.
        """
        pass


class IdentityResolver(ABC):
    """Interface for attributing anonymous leaderboard rows to drivers."""

    @abstractmethod
    def resolve(
        self,
        stage: Stage,
        entries: Sequence[LeaderboardEntry],
        world_ranks: Mapping[str, int | None],
        failed: AbstractSet[str] = frozenset(),
    ) -> list[tuple[str, StageOutcome]]:
        """
        Attribute the rows of one stage to configured drivers.

        Args:
            stage: Stage the rows belong to
            entries: Rows of the friends-filtered leaderboard
            world_ranks: Driver name -> world rank, None when the driver has no time
            failed: Drivers whose world rank query failed

        Returns:
            (driver name, outcome) pairs in local rank order
        """
        pass


class SnapshotStorage(ABC):
    """Interface for persisting snapshots between fetch cycles."""

    @abstractmethod
    def save_snapshot(self, snapshot: Snapshot) -> Path:
        """Persist a snapshot and return where it was written."""
        pass

    @abstractmethod
    def load_latest(self) -> Snapshot | None:
        """Load the most recent snapshot, or None if there is none."""
        pass

