"""
JSON snapshot storage implementation.

Writes one JSON document per fetch cycle into a snapshot directory and reads
back the most recent one as the baseline for the next cycle.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import TypedDict, override

from ..exceptions import SnapshotError, ValidationError
from ..interfaces import SnapshotStorage
from ..logging_config import get_logger
from ..models import Rally, RallyOutcomes, Snapshot, Stage, StageOutcome

# Module-level logger
logger = get_logger("json_storage")

SNAPSHOT_VERSION = 1
SNAPSHOT_PREFIX = "snapshot-"


class StageDocument(TypedDict):
    area: str
    stage_number: int
    direction: str
    weather: str
    group: str


class RallyDocument(TypedDict):
    title: str
    stages: list[StageDocument]


class OutcomeDocument(TypedDict):
    time_ms: int
    car_id: int
    local_rank: int
    world_rank: int | None


class SnapshotDocument(TypedDict):
    """Type definition for a persisted snapshot."""

    version: int
    created_at: float
    platform: str
    drivers: list[str]
    rallies: list[RallyDocument]
    results: dict[str, dict[str, list[OutcomeDocument | None]]]


_snapshot_adapter = TypeAdapter(SnapshotDocument)


def snapshot_to_document(snapshot: Snapshot) -> SnapshotDocument:
    """Convert a snapshot into its JSON document form."""
    return {
        "version": SNAPSHOT_VERSION,
        "created_at": snapshot.created_at,
        "platform": snapshot.platform,
        "drivers": list(snapshot.drivers),
        "rallies": [
            {
                "title": rally.title,
                "stages": [
                    {
                        "area": stage.area,
                        "stage_number": stage.stage_number,
                        "direction": stage.direction,
                        "weather": stage.weather,
                        "group": stage.group,
                    }
                    for stage in rally.stages
                ],
            }
            for rally in snapshot.rallies
        ],
        "results": {
            title: {
                driver: [
                    None
                    if outcome is None
                    else {
                        "time_ms": outcome.time_ms,
                        "car_id": outcome.car_id,
                        "local_rank": outcome.local_rank,
                        "world_rank": outcome.world_rank,
                    }
                    for outcome in outcomes
                ]
                for driver, outcomes in rally_outcomes.items()
            }
            for title, rally_outcomes in snapshot.results.items()
        },
    }


def snapshot_from_document(data: object) -> Snapshot:
    """
    Build a snapshot from a decoded JSON document.

    Raises:
        SnapshotError: If the document does not match the snapshot schema
    """
    try:
        document = _snapshot_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise SnapshotError(f"invalid snapshot document: {e}") from e

    if document["version"] != SNAPSHOT_VERSION:
        raise SnapshotError(f"unsupported snapshot version {document['version']}")

    try:
        rallies = tuple(
            Rally(title=rally["title"], stages=tuple(Stage(**stage) for stage in rally["stages"]))
            for rally in document["rallies"]
        )
        results: dict[str, RallyOutcomes] = {
            title: {
                driver: tuple(None if o is None else StageOutcome(**o) for o in outcomes)
                for driver, outcomes in rally_outcomes.items()
            }
            for title, rally_outcomes in document["results"].items()
        }
        return Snapshot(
            platform=document["platform"],
            drivers=tuple(document["drivers"]),
            rallies=rallies,
            results=results,
            created_at=document["created_at"],
        )
    except ValidationError as e:
        raise SnapshotError(f"inconsistent snapshot document: {e}") from e


class JSONSnapshotStorage(SnapshotStorage):
    """
    Directory of timestamped JSON snapshots.

    File names sort chronologically, so the newest snapshot is the last one
    in name order.
    """

    snapshot_dir: Path

    def __init__(self, snapshot_dir: Path):
        """
        Initialize JSON snapshot storage.

        Args:
            snapshot_dir: Directory holding snapshot files (created if missing)
        """
        self.snapshot_dir = Path(snapshot_dir)
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JSON snapshot storage initialized: {self.snapshot_dir}")

    def path_for(self, snapshot: Snapshot) -> Path:
        stamp = datetime.fromtimestamp(snapshot.created_at, tz=timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        return self.snapshot_dir / f"{SNAPSHOT_PREFIX}{stamp}.json"

    def list_snapshots(self) -> list[Path]:
        """All snapshot files, oldest first."""
        return sorted(self.snapshot_dir.glob(f"{SNAPSHOT_PREFIX}*.json"))

    @override
    def save_snapshot(self, snapshot: Snapshot) -> Path:
        """Write a snapshot to its own timestamped file."""
        path = self.path_for(snapshot)
        logger.info(f"Saving snapshot to {path}")

        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot_to_document(snapshot), f, indent=2, ensure_ascii=False)
        _ = tmp_path.replace(path)

        logger.debug("Snapshot saved successfully")
        return path

    @override
    def load_latest(self) -> Snapshot | None:
        """
        Load the newest snapshot.

        Raises:
            SnapshotError: If the newest file is unreadable or unparsable
        """
        paths = self.list_snapshots()
        if not paths:
            logger.info(f"No snapshot in {self.snapshot_dir}")
            return None
        return self.load(paths[-1])

    def load(self, path: Path) -> Snapshot:
        """Load one snapshot file."""
        logger.info(f"Loading snapshot from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SnapshotError(f"cannot read snapshot {path}: {e}") from e

        try:
            return snapshot_from_document(data)
        except SnapshotError as e:
            raise SnapshotError(f"{path}: {e}") from e
