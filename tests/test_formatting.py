"""
Tests for plain-text formatting helpers.
"""

import pytest

from rally_standings.formatting import describe_event, format_delta, format_time, standings_table
from rally_standings.models import ChangeEvent, ChangeKind, Rally, Stage, StageOutcome
from rally_standings.rankers.time_ranker import TimeRanker


class TestFormatting:
    """Test time formatting and report rendering."""

    def test_format_time(self) -> None:
        assert format_time(61234) == "1:01.234"
        assert format_time(61234, long=True) == "01:01.234"
        assert format_time(0) == "0:00.000"
        assert format_time(3_723_004, long=True) == "62:03.004"

    def test_format_delta(self) -> None:
        assert format_delta(61234, 60000) == "+0:01.234"
        assert format_delta(60000, 60000) == ""
        with pytest.raises(ValueError):
            _ = format_delta(59000, 60000)

    def test_describe_improvement_with_passed_drivers(self) -> None:
        event = ChangeEvent(
            kind=ChangeKind.IMPROVED_TIME_RANK_UP,
            driver="dan",
            rank=2,
            time_ms=110000,
            previous_time_ms=120000,
            previous_rank=3,
            passed=("ben",),
        )
        assert describe_event(event) == "2. dan improved to 1:50.000 (was 2:00.000), up from 3, passing ben"

    def test_describe_new_entrant(self) -> None:
        event = ChangeEvent(kind=ChangeKind.NEW_ENTRANT, driver="eve", rank=4, time_ms=90500)
        assert describe_event(event) == "4. eve set a first time of 1:30.500"

    def test_standings_table_lists_every_driver(self) -> None:
        # Arrange
        stages = (
            Stage("Norway", 1, "forward", "snow", "group_a"),
            Stage("Norway", 2, "forward", "snow", "group_a"),
        )
        rally = Rally("Norway", stages)
        standings = TimeRanker().classify(
            rally,
            {
                "ann": (StageOutcome(60000, 1, 1), StageOutcome(61000, 1, 1)),
                "ben": (StageOutcome(62000, 2, 2), None),
                "cat": (None, None),
            },
        )

        # Act
        text = standings_table(standings).get_string()

        # Assert
        assert "ann" in text
        assert "* 01:02.000" in text
        assert "cat" in text
        assert "Norway 2 forward (snow)" in text
