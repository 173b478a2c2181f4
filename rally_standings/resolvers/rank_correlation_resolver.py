"""
Rank correlation identity resolver.

The friends-filtered leaderboard returns ranked rows without a stable account
id, and the display name on each row is not trustworthy. Identity is recovered
by pairing two independent orderings of the same population: the drivers
sorted by their individual world rank, and the rows sorted by local rank.

This holds only while both queries cover exactly the configured population
and agree on relative order. It is a heuristic, not an identity proof.
"""

from collections.abc import Mapping, Sequence, Set as AbstractSet
from typing import TYPE_CHECKING

from typing_extensions import override

if TYPE_CHECKING:
    from loguru import Logger

from ..interfaces import IdentityResolver
from ..logging_config import get_logger
from ..models import Driver, LeaderboardEntry, Stage, StageOutcome


def timed_entries(entries: Sequence[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Entries that carry a time, sorted ascending by local rank."""
    return sorted((e for e in entries if e.time_ms > 0), key=lambda e: e.local_rank)


def is_rank_permutation(entries: Sequence[LeaderboardEntry]) -> bool:
    """True if the local ranks are exactly 1..N."""
    return sorted(e.local_rank for e in entries) == list(range(1, len(entries) + 1))


class RankCorrelationResolver(IdentityResolver):
    """
    Resolver pairing the i-th best world rank with the i-th best local rank.

    Drivers without a world rank are left out of the pairing. A driver with no
    time has no row either, so the orderings stay aligned. A driver whose rank
    query failed may still have a row somewhere in the middle; when that is
    possible (more rows than ranked drivers) the stage is not paired. When the
    two orderings otherwise differ in length, pairing stops at the shorter one.
    """

    def __init__(self, drivers: Sequence[Driver]):
        """
        Initialize resolver.

        Args:
            drivers: Configured population; list order breaks world rank ties
        """
        self.order: dict[str, int] = {driver.name: i for i, driver in enumerate(drivers)}
        self.logger: Logger = get_logger("rank_correlation_resolver")

    @override
    def resolve(
        self,
        stage: Stage,
        entries: Sequence[LeaderboardEntry],
        world_ranks: Mapping[str, int | None],
        failed: AbstractSet[str] = frozenset(),
    ) -> list[tuple[str, StageOutcome]]:
        """Pair drivers with rows by rank order."""
        ranked_drivers = sorted(
            (
                (rank, name)
                for name, rank in world_ranks.items()
                if rank is not None and name in self.order and name not in failed
            ),
            key=lambda item: (item[0], self.order[item[1]]),
        )
        rows = timed_entries(entries)

        unlocated = sorted(name for name in failed if name in self.order)
        if unlocated and len(rows) > len(ranked_drivers):
            self.logger.warning(
                f"{stage.label}: rank query failed for {', '.join(unlocated)} and {len(rows)} rows "
                f"exceed {len(ranked_drivers)} ranked drivers, skipping stage"
            )
            return []

        if not is_rank_permutation(rows):
            self.logger.warning(
                f"{stage.label}: local ranks {[e.local_rank for e in rows]} are not a permutation of 1..{len(rows)}"
            )
        if len(ranked_drivers) != len(rows):
            self.logger.info(
                f"{stage.label}: {len(ranked_drivers)} drivers with a world rank but {len(rows)} rows, "
                f"pairing the first {min(len(ranked_drivers), len(rows))}"
            )

        resolved = list[tuple[str, StageOutcome]]()
        for (world_rank, name), entry in zip(ranked_drivers, rows):
            outcome = StageOutcome(
                time_ms=entry.time_ms,
                car_id=entry.car_id,
                local_rank=entry.local_rank,
                world_rank=world_rank,
            )
            resolved.append((name, outcome))
            self.logger.debug(
                f"{stage.label}: world rank {world_rank} ({name}) -> local rank {entry.local_rank}"
            )
        return resolved
