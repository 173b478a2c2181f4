"""
Plain-text formatting of standings and change events for the CLI.
"""

from prettytable import PrettyTable

from .models import ChangeEvent, ChangeKind, RallyChanges, RallyStandings


def format_time(ms: int, long: bool = False) -> str:
    """Format milliseconds as m:ss.mmm, or mm:ss.mmm when long."""
    minutes = ms // 1000 // 60
    seconds = (ms // 1000) % 60
    millis = ms % 1000
    if long:
        return f"{minutes:02}:{seconds:02}.{millis:03}"
    return f"{minutes:01}:{seconds:02}.{millis:03}"


def format_delta(ms: int, fastest: int, long: bool = False) -> str:
    """Gap to the fastest time, blank for the fastest itself."""
    if ms < fastest:
        raise ValueError(f"time {ms} is faster than the fastest time {fastest}")
    if ms == fastest:
        return ""
    return f"+{format_time(ms - fastest, long)}"


def _stage_cell(time_ms: int | None, fastest: int | None) -> str:
    if time_ms is None or fastest is None:
        return "-"
    delta = format_delta(time_ms, fastest)
    return format_time(time_ms) if not delta else f"{format_time(time_ms)}\n{delta}"


def standings_table(standings: RallyStandings) -> PrettyTable:
    """Table of one rally: full results, then partial (marked *), then drivers without times."""
    rally = standings.rally
    table = PrettyTable()
    table.field_names = ["Driver", "Total", *(stage.label for stage in rally.stages)]
    table.align = "r"
    table.align["Driver"] = "l"

    for result in standings.full:
        assert standings.fastest_total is not None
        delta = format_delta(result.total_time_ms, standings.fastest_total, long=True)
        total = format_time(result.total_time_ms, long=True)
        table.add_row([
            result.driver,
            total if not delta else f"{total}\n{delta}",
            *(_stage_cell(t, f) for t, f in zip(result.stage_times, standings.fastest_per_stage)),
        ])
    for result in standings.partial:
        table.add_row([
            result.driver,
            f"* {format_time(result.total_time_ms, long=True)}",
            *(_stage_cell(t, f) for t, f in zip(result.stage_times, standings.fastest_per_stage)),
        ])
    for driver in standings.no_times:
        table.add_row([driver, "-", *("-" for _ in rally.stages)])
    return table


def describe_event(event: ChangeEvent) -> str:
    """One-line description of a change event."""
    time = format_time(event.time_ms)
    previous = format_time(event.previous_time_ms) if event.previous_time_ms is not None else ""
    match event.kind:
        case ChangeKind.NEW_ENTRANT:
            text = f"{event.rank}. {event.driver} set a first time of {time}"
        case ChangeKind.IMPROVED_TIME_RANK_UP:
            text = f"{event.rank}. {event.driver} improved to {time} (was {previous}), up from {event.previous_rank}"
        case ChangeKind.IMPROVED_TIME_RANK_SAME:
            text = f"{event.rank}. {event.driver} improved to {time} (was {previous})"
        case ChangeKind.IMPROVED_TIME_RANK_DOWN:
            text = f"{event.rank}. {event.driver} improved to {time} (was {previous}), down from {event.previous_rank}"
        case ChangeKind.RANK_DOWN:
            text = f"{event.rank}. {event.driver} dropped from {event.previous_rank} ({time})"
        case _:
            text = f"{event.rank}. {event.driver} {time}"
    if event.passed:
        text += f", passing {', '.join(event.passed)}"
    return text


def describe_changes(changes: RallyChanges) -> list[str]:
    """Lines describing the changes of one rally."""
    lines = [changes.title]
    if changes.overall:
        lines.append("  Overall:")
        lines.extend(f"    {describe_event(e)}" for e in changes.overall)
    for stage_changes in changes.stages:
        lines.append(f"  {stage_changes.stage.label}:")
        lines.extend(f"    {describe_event(e)}" for e in stage_changes.events)
    return lines
