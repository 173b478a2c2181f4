"""
Upstream leaderboard service: URL layout and response decoding.

Two kinds of query are used. A friends-filtered leaderboard returns the ranked,
anonymous rows of the configured population on one stage. A rank query returns
one account's position on the full, ungated leaderboard of one stage.
"""

import json
from collections.abc import Sequence
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict

from .exceptions import DecodeError
from .models import Driver, LeaderboardEntry, Stage

DEFAULT_BASE_URL = "https://www.funselektorfun.com/artofrally/leaderboard"
FRIENDS_FILTER = "friends"
RANK_FILTER = "rank"


class LeaderboardRow(TypedDict):
    """One row of a friends-filtered leaderboard response."""

    local_rank: int
    score_ms: int
    car_id: int
    display_name: NotRequired[str]


class LeaderboardResponse(TypedDict):
    """Type definition for a leaderboard JSON response."""

    leaderboard: list[LeaderboardRow]


class RankResponse(TypedDict):
    """Type definition for a world rank JSON response."""

    result: int
    rank: int


_leaderboard_adapter = TypeAdapter(LeaderboardResponse)
_rank_adapter = TypeAdapter(RankResponse)


def _load_json(url: str, body: bytes) -> object:
    try:
        return json.loads(body)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; RecursionError on deep nesting
        raise DecodeError(url, f"response is not JSON: {e}") from e


def decode_leaderboard(url: str, body: bytes) -> list[LeaderboardEntry]:
    """
    Decode a leaderboard response body.

    Args:
        url: URL the body was fetched from, for error reporting
        body: Raw response body

    Returns:
        Entries in response order

    Raises:
        DecodeError: If the body is not JSON or does not match the schema
    """
    data = _load_json(url, body)
    try:
        response = _leaderboard_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise DecodeError(url, f"unexpected leaderboard schema: {e.error_count()} errors") from e

    return [
        LeaderboardEntry(
            local_rank=row["local_rank"],
            time_ms=row["score_ms"],
            car_id=row["car_id"],
            display_name=row.get("display_name", ""),
        )
        for row in response["leaderboard"]
    ]


def decode_rank(url: str, body: bytes) -> int | None:
    """
    Decode a world rank response body.

    A rank below 1 means the account has no time on the stage.

    Raises:
        DecodeError: If the body is not JSON or does not match the schema
    """
    data = _load_json(url, body)
    try:
        response = _rank_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise DecodeError(url, f"unexpected rank schema: {e.error_count()} errors") from e

    rank = response["rank"]
    return rank if rank >= 1 else None


class LeaderboardApi:
    """Builds query URLs for one platform of the upstream service."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, platform: str = "steam"):
        self.base_url: str = base_url.rstrip("/")
        self.platform: str = platform

    def leaderboard_id(self, stage: Stage) -> str:
        parts = [stage.area, str(stage.stage_number), stage.direction, stage.weather, stage.group]
        return quote("_".join(parts).lower(), safe="")

    def friends_url(self, stage: Stage, owner: Driver, friends: Sequence[Driver]) -> str:
        """URL of the leaderboard restricted to the owner and their friends."""
        url = (
            f"{self.base_url}/{self.leaderboard_id(stage)}/{FRIENDS_FILTER}/"
            f"{quote(self.platform, safe='')}/{quote(owner.account_id, safe='')}"
        )
        friend_ids = [quote(friend.account_id, safe="") for friend in friends]
        if friend_ids:
            url += "/" + ",".join(friend_ids)
        return url

    def population_url(self, stage: Stage, drivers: Sequence[Driver]) -> str:
        """Friends leaderboard URL covering exactly the given drivers."""
        if not drivers:
            raise ValueError("at least one driver is required")
        return self.friends_url(stage, drivers[0], drivers[1:])

    def rank_url(self, stage: Stage, driver: Driver) -> str:
        """URL of one driver's world rank on one stage."""
        return (
            f"{self.base_url}/{self.leaderboard_id(stage)}/{RANK_FILTER}/"
            f"{quote(self.platform, safe='')}/{quote(driver.account_id, safe='')}"
        )
