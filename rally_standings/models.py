"""
Core dataclasses for the rally standings system.

Defines stages, rallies, raw leaderboard rows, resolved outcomes, classified
results, snapshots and change events.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Generic, TypeVar

from .exceptions import FetchError, ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class Stage:
    """Fully-qualified leaderboard descriptor."""

    area: str
    stage_number: int
    direction: str
    weather: str
    group: str

    def __post_init__(self) -> None:
        """Validate stage data."""
        if not self.area:
            raise ValidationError("area cannot be empty")
        if self.stage_number < 1:
            raise ValidationError(f"stage_number must be positive, got {self.stage_number}")

    @property
    def label(self) -> str:
        return f"{self.area} {self.stage_number} {self.direction} ({self.weather})"


@dataclass(frozen=True)
class Rally:
    """A titled, ordered sequence of stages."""

    title: str
    stages: tuple[Stage, ...]

    def __post_init__(self) -> None:
        """Validate rally data."""
        if not self.title:
            raise ValidationError("rally title cannot be empty")
        if not self.stages:
            raise ValidationError(f"rally {self.title!r} must have at least one stage")

    @property
    def stage_count(self) -> int:
        return len(self.stages)


@dataclass(frozen=True)
class Driver:
    """Configured driver identity and the account backing it upstream."""

    name: str
    account_id: str

    def __post_init__(self) -> None:
        """Validate driver data."""
        if not self.name:
            raise ValidationError("driver name cannot be empty")
        if not self.account_id:
            raise ValidationError(f"account_id cannot be empty for driver {self.name!r}")


@dataclass(frozen=True)
class LeaderboardEntry:
    """Anonymous row of a friends-filtered leaderboard.

    The display name is reported by the game client and is not trusted.
    """

    local_rank: int
    time_ms: int
    car_id: int
    display_name: str = ""


@dataclass(frozen=True)
class StageOutcome:
    """A driver's resolved result on one stage."""

    time_ms: int
    car_id: int
    local_rank: int
    world_rank: int | None = None


@dataclass
class FullResult:
    """A driver with an outcome on every stage of a rally."""

    driver: str
    total_time_ms: int
    stage_times: tuple[int, ...]
    cars: tuple[int, ...]
    world_ranks: tuple[int | None, ...]


@dataclass
class PartialResult:
    """A driver with outcomes on some, but not all, stages of a rally."""

    driver: str
    finished_stages: int
    total_time_ms: int
    stage_times: tuple[int | None, ...]
    cars: tuple[int | None, ...]
    world_ranks: tuple[int | None, ...]


@dataclass
class RallyStandings:
    """Classified and ranked results of one rally for one fetch cycle."""

    rally: Rally
    full: list[FullResult]
    partial: list[PartialResult]
    no_times: list[str]
    fastest_total: int | None
    fastest_per_stage: list[int | None]


RallyOutcomes = Mapping[str, tuple[StageOutcome | None, ...]]


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time capture of all rally results.

    Created once per fetch cycle, persisted, and later read back as the
    baseline of the next cycle. Never mutated: results are copied into
    read-only mappings on construction.
    """

    platform: str
    drivers: tuple[str, ...]
    rallies: tuple[Rally, ...]
    results: Mapping[str, RallyOutcomes]
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Check that every outcome array matches its rally's stage count."""
        titles = [rally.title for rally in self.rallies]
        if len(set(titles)) != len(titles):
            raise ValidationError(f"duplicate rally titles in snapshot: {titles}")
        for rally in self.rallies:
            for driver, outcomes in self.results.get(rally.title, {}).items():
                if len(outcomes) != rally.stage_count:
                    raise ValidationError(
                        f"driver {driver!r} has {len(outcomes)} outcomes for rally "
                        f"{rally.title!r}, expected {rally.stage_count}"
                    )
        frozen = {
            title: MappingProxyType({driver: tuple(outcomes) for driver, outcomes in rally_outcomes.items()})
            for title, rally_outcomes in self.results.items()
        }
        object.__setattr__(self, "results", MappingProxyType(frozen))

    def rally(self, title: str) -> Rally | None:
        """Find a rally by title."""
        for rally in self.rallies:
            if rally.title == title:
                return rally
        return None

    def outcomes(self, title: str) -> RallyOutcomes:
        """Per-driver outcome arrays for a rally, empty if unknown."""
        return self.results.get(title, {})


class ChangeKind(str, Enum):
    """Classification of one driver's result against the previous snapshot."""

    NEW_ENTRANT = "new_entrant"
    IMPROVED_TIME_RANK_UP = "improved_time_rank_up"
    IMPROVED_TIME_RANK_SAME = "improved_time_rank_same"
    IMPROVED_TIME_RANK_DOWN = "improved_time_rank_down"
    RANK_DOWN = "rank_down"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ChangeEvent:
    """One entry of a change report for a stage or a rally total."""

    kind: ChangeKind
    driver: str
    rank: int
    time_ms: int
    previous_time_ms: int | None = None
    previous_rank: int | None = None
    passed: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageChanges:
    """Ordered change events of one stage."""

    stage_index: int
    stage: Stage
    events: tuple[ChangeEvent, ...]


@dataclass(frozen=True)
class RallyChanges:
    """Ordered change events of one rally, overall and per stage."""

    title: str
    overall: tuple[ChangeEvent, ...]
    stages: tuple[StageChanges, ...]


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one slot of a fetch batch: a decoded payload or an error."""

    url: str
    payload: T | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
