"""
Display name identity resolver.

Attributes rows by the display name the game client reports. Names can be
changed by their owners, so this only suits populations whose names are known
to be stable.
"""

from collections.abc import Mapping, Sequence, Set as AbstractSet

from typing_extensions import override

from ..interfaces import IdentityResolver
from ..logging_config import get_logger
from ..models import Driver, LeaderboardEntry, Stage, StageOutcome
from .rank_correlation_resolver import timed_entries

# Module-level logger
logger = get_logger("display_name_resolver")


class DisplayNameResolver(IdentityResolver):
    """Resolver matching rows to drivers by display name."""

    def __init__(self, drivers: Sequence[Driver]):
        self.names: set[str] = {driver.name for driver in drivers}

    @override
    def resolve(
        self,
        stage: Stage,
        entries: Sequence[LeaderboardEntry],
        world_ranks: Mapping[str, int | None],
        failed: AbstractSet[str] = frozenset(),
    ) -> list[tuple[str, StageOutcome]]:
        """
        Match rows by display name; unknown and repeated names are skipped.

        Names identify rows on their own, so failed rank queries only leave
        world_rank unset.
        """
        resolved = list[tuple[str, StageOutcome]]()
        seen = set[str]()
        for entry in timed_entries(entries):
            name = entry.display_name
            if name not in self.names:
                logger.warning(f"{stage.label}: unknown display name {name!r} at local rank {entry.local_rank}")
                continue
            if name in seen:
                logger.warning(f"{stage.label}: display name {name!r} appears more than once")
                continue
            seen.add(name)
            resolved.append(
                (
                    name,
                    StageOutcome(
                        time_ms=entry.time_ms,
                        car_id=entry.car_id,
                        local_rank=entry.local_rank,
                        world_rank=world_ranks.get(name),
                    ),
                )
            )
        return resolved
