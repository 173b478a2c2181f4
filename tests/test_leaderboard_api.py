"""
Tests for upstream URL building and response decoding.
"""

import json

import pytest

from rally_standings.exceptions import DecodeError
from rally_standings.leaderboard_api import LeaderboardApi, decode_leaderboard, decode_rank
from rally_standings.models import Driver, LeaderboardEntry, Stage

STAGE = Stage(area="Germany", stage_number=4, direction="forward", weather="dry", group="group_2")


class TestLeaderboardApi:
    """Test URL layout."""

    def test_population_url_uses_first_driver_as_owner(self) -> None:
        api = LeaderboardApi("https://leaderboard.test/", "steam")
        url = api.population_url(STAGE, [Driver("ann", "1"), Driver("ben", "2"), Driver("cat", "3")])
        assert url == "https://leaderboard.test/germany_4_forward_dry_group_2/friends/steam/1/2,3"

    def test_rank_url(self) -> None:
        api = LeaderboardApi("https://leaderboard.test", "epic")
        assert api.rank_url(STAGE, Driver("ann", "a b")) == "https://leaderboard.test/germany_4_forward_dry_group_2/rank/epic/a%20b"

    def test_population_url_needs_a_driver(self) -> None:
        with pytest.raises(ValueError):
            _ = LeaderboardApi().population_url(STAGE, [])


class TestDecoders:
    """Test response decoding."""

    def test_decode_leaderboard(self) -> None:
        body = json.dumps(
            {"leaderboard": [{"local_rank": 2, "score_ms": 1500, "car_id": 4, "display_name": "x"}, {"local_rank": 1, "score_ms": 1400, "car_id": 5}]}
        ).encode()
        assert decode_leaderboard("u", body) == [
            LeaderboardEntry(local_rank=2, time_ms=1500, car_id=4, display_name="x"),
            LeaderboardEntry(local_rank=1, time_ms=1400, car_id=5, display_name=""),
        ]

    def test_decode_rank(self) -> None:
        assert decode_rank("u", b'{"result": 1, "rank": 42}') == 42
        assert decode_rank("u", b'{"result": 0, "rank": 0}') is None

    def test_decode_errors(self) -> None:
        with pytest.raises(DecodeError):
            _ = decode_rank("u", b'{"rank": 1}')
        with pytest.raises(DecodeError):
            _ = decode_leaderboard("u", b"\xff")
        with pytest.raises(DecodeError):
            _ = decode_leaderboard("u", b'{"leaderboard": "none"}')
        with pytest.raises(DecodeError):
            _ = decode_leaderboard("u", b"[" * 200000 + b"]" * 200000)
