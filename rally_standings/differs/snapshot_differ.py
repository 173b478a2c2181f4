"""
Snapshot diff engine.

Compares the results of the current fetch cycle with the previous snapshot and
reports, per rally overall and per stage, new entrants, improved times and lost
positions.

Matching rules:
- rallies are matched by title,
- drivers by name,
- a stage only when the previous rally has the identical stage at the same
  position,
- the rally total only when the previous rally has the identical stage list.
Anything without a match counts as having no previous entry.
"""

from collections.abc import Mapping, Sequence

from ..models import (
    ChangeEvent,
    ChangeKind,
    Rally,
    RallyChanges,
    RallyOutcomes,
    Snapshot,
    StageChanges,
)
from ..rankers.time_ranker import TimeRanker

# (driver, time_ms) in rank order; rank is position + 1
Ordering = Sequence[tuple[str, int]]


def classify_change(time_ms: int, rank: int, previous: tuple[int, int] | None) -> ChangeKind:
    """
    Classify a current (time, rank) against an optional previous (time, rank).
    """
    if previous is None:
        return ChangeKind.NEW_ENTRANT
    previous_time, previous_rank = previous
    if time_ms < previous_time:
        if rank < previous_rank:
            return ChangeKind.IMPROVED_TIME_RANK_UP
        if rank == previous_rank:
            return ChangeKind.IMPROVED_TIME_RANK_SAME
        return ChangeKind.IMPROVED_TIME_RANK_DOWN
    if rank > previous_rank:
        return ChangeKind.RANK_DOWN
    return ChangeKind.UNCHANGED


def passed_drivers(
    driver: str,
    rank: int,
    previous_rank: int,
    current_ranks: Mapping[str, int],
    previous_ranks: Mapping[str, int],
) -> tuple[str, ...]:
    """
    Drivers overtaken by a driver whose rank went from previous_rank to rank.

    An overtaken driver was ranked ahead of the driver before and is now
    ranked behind it. Returned in current rank order.
    """
    if rank >= previous_rank:
        return ()
    overtaken = [
        other
        for other, other_previous in previous_ranks.items()
        if other != driver
        and other_previous < previous_rank
        and current_ranks.get(other, 0) > rank
    ]
    return tuple(sorted(overtaken, key=lambda other: current_ranks[other]))


def visible_events(events: Sequence[ChangeEvent]) -> tuple[ChangeEvent, ...]:
    """
    Drop unchanged events that carry no context.

    Events must be in rank order. An unchanged event is kept only when it
    immediately precedes a changed one; if nothing changed, nothing is kept.
    """
    kept = list[ChangeEvent]()
    for i, event in enumerate(events):
        if event.kind != ChangeKind.UNCHANGED:
            kept.append(event)
        elif i + 1 < len(events) and events[i + 1].kind != ChangeKind.UNCHANGED:
            kept.append(event)
    return tuple(kept)


def diff_ordering(current: Ordering, previous: Ordering | None) -> tuple[ChangeEvent, ...]:
    """
    Diff one scope (a stage or a rally total).

    Args:
        current: Current (driver, time) pairs in rank order
        previous: Previous (driver, time) pairs in rank order, or None when
            the scope has no counterpart in the previous snapshot

    Returns:
        Visible change events sorted by current rank
    """
    current_ranks = {driver: i + 1 for i, (driver, _) in enumerate(current)}
    previous_entries = {
        driver: (time_ms, i + 1) for i, (driver, time_ms) in enumerate(previous or ())
    }
    previous_ranks = {driver: rank for driver, (_, rank) in previous_entries.items()}

    events = list[ChangeEvent]()
    for driver, time_ms in current:
        rank = current_ranks[driver]
        entry = previous_entries.get(driver)
        kind = classify_change(time_ms, rank, entry)
        if entry is None:
            events.append(ChangeEvent(kind=kind, driver=driver, rank=rank, time_ms=time_ms))
            continue
        previous_time, previous_rank = entry
        events.append(
            ChangeEvent(
                kind=kind,
                driver=driver,
                rank=rank,
                time_ms=time_ms,
                previous_time_ms=previous_time,
                previous_rank=previous_rank,
                passed=passed_drivers(driver, rank, previous_rank, current_ranks, previous_ranks),
            )
        )

    events.sort(key=lambda e: (e.rank, e.driver))
    return visible_events(events)


def diff_rally(
    rally: Rally,
    outcomes: RallyOutcomes,
    previous_rally: Rally | None,
    previous_outcomes: RallyOutcomes,
    ranker: TimeRanker,
) -> RallyChanges:
    """Diff one rally overall and stage by stage."""
    previous_overall: Ordering | None = None
    if previous_rally is not None and previous_rally.stages == rally.stages:
        previous_standings = ranker.classify(previous_rally, previous_outcomes)
        previous_overall = ranker.overall_order(previous_standings)
    overall = diff_ordering(ranker.overall_order(ranker.classify(rally, outcomes)), previous_overall)

    stages = list[StageChanges]()
    for i, stage in enumerate(rally.stages):
        previous_stage: Ordering | None = None
        if (
            previous_rally is not None
            and i < previous_rally.stage_count
            and previous_rally.stages[i] == stage
        ):
            previous_stage = ranker.stage_order(previous_outcomes, i)
        events = diff_ordering(ranker.stage_order(outcomes, i), previous_stage)
        if events:
            stages.append(StageChanges(stage_index=i, stage=stage, events=events))

    return RallyChanges(title=rally.title, overall=overall, stages=tuple(stages))


def diff_snapshots(
    current: Snapshot,
    previous: Snapshot | None,
    ranker: TimeRanker | None = None,
) -> list[RallyChanges]:
    """
    Diff every rally of the current snapshot against the previous one.

    Pure function: neither snapshot is modified and no state is kept between
    calls.

    Returns:
        One RallyChanges per rally with any output, in current rally order
    """
    ranker = ranker or TimeRanker()
    changes = list[RallyChanges]()
    for rally in current.rallies:
        previous_rally = previous.rally(rally.title) if previous is not None else None
        previous_outcomes = previous.outcomes(rally.title) if previous is not None else {}
        rally_changes = diff_rally(
            rally, current.outcomes(rally.title), previous_rally, previous_outcomes, ranker
        )
        if rally_changes.overall or rally_changes.stages:
            changes.append(rally_changes)
    return changes
