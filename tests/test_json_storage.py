"""
Tests for JSONSnapshotStorage implementation.

Focus on round trips, latest-snapshot selection and corrupt files.
"""

import json
import tempfile
from pathlib import Path

import pytest

from rally_standings.exceptions import SnapshotError, ValidationError
from rally_standings.models import Rally, Snapshot, Stage, StageOutcome
from rally_standings.storage.json_storage import (
    JSONSnapshotStorage,
    snapshot_from_document,
    snapshot_to_document,
)

STAGES = (
    Stage(area="Sardinia", stage_number=1, direction="forward", weather="dry", group="group_s"),
    Stage(area="Sardinia", stage_number=2, direction="reverse", weather="night", group="group_s"),
)
RALLY = Rally(title="Sardinia", stages=STAGES)


def make_snapshot(created_at: float = 1700000000.25, ann_time: int = 61234) -> Snapshot:
    return Snapshot(
        platform="steam",
        drivers=("ann", "ben"),
        rallies=(RALLY,),
        results={
            "Sardinia": {
                "ann": (StageOutcome(ann_time, 12, 1, 345), StageOutcome(70500, 12, 2, None)),
                "ben": (None, StageOutcome(69999, 4, 1, 17)),
            }
        },
        created_at=created_at,
    )


class TestSnapshotDocument:
    """Test snapshot document conversion."""

    def test_round_trip_preserves_outcomes_and_optional_fields(self) -> None:
        """Serialize then deserialize reproduces the same snapshot."""
        # Arrange
        snapshot = make_snapshot()

        # Act
        document = json.loads(json.dumps(snapshot_to_document(snapshot)))
        restored = snapshot_from_document(document)

        # Assert
        assert restored == snapshot
        assert restored.results["Sardinia"]["ann"][1].world_rank is None
        assert restored.results["Sardinia"]["ben"][0] is None

    def test_schema_mismatch_is_snapshot_error(self) -> None:
        """Documents missing fields are rejected with a descriptive error."""
        with pytest.raises(SnapshotError, match="invalid snapshot document"):
            _ = snapshot_from_document({"version": 1, "platform": "steam"})

    def test_inconsistent_outcome_length_is_snapshot_error(self) -> None:
        """Outcome arrays must match the rally's stage count."""
        document = snapshot_to_document(make_snapshot())
        document["results"]["Sardinia"]["ann"].pop()
        with pytest.raises(SnapshotError, match="inconsistent"):
            _ = snapshot_from_document(document)

    def test_snapshot_rejects_wrong_outcome_length(self) -> None:
        """Snapshots check their own invariants on construction."""
        with pytest.raises(ValidationError):
            _ = Snapshot(platform="steam", drivers=("ann",), rallies=(RALLY,), results={"Sardinia": {"ann": (None,)}})


class TestJSONSnapshotStorage:
    """Test JSONSnapshotStorage behavior through public interface."""

    def test_empty_directory_has_no_snapshot(self) -> None:
        """No previous snapshot loads as None."""
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONSnapshotStorage(Path(temp_dir) / "snapshots")
            assert storage.load_latest() is None

    def test_save_and_load_latest(self) -> None:
        """The newest snapshot is loaded back."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONSnapshotStorage(Path(temp_dir))
            older = make_snapshot(created_at=1700000000.0, ann_time=65000)
            newer = make_snapshot(created_at=1700003600.0, ann_time=60000)

            # Act
            _ = storage.save_snapshot(newer)
            _ = storage.save_snapshot(older)
            loaded = storage.load_latest()

            # Assert
            assert loaded == newer
            assert len(storage.list_snapshots()) == 2

    def test_saved_file_is_json(self) -> None:
        """Snapshots are plain JSON documents."""
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JSONSnapshotStorage(Path(temp_dir))
            path = storage.save_snapshot(make_snapshot())
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            assert data["platform"] == "steam"
            assert data["rallies"][0]["stages"][1]["direction"] == "reverse"
            assert not list(Path(temp_dir).glob("*.tmp"))

    def test_corrupt_latest_snapshot_is_fatal(self) -> None:
        """An unparsable newest file raises an error naming the file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONSnapshotStorage(Path(temp_dir))
            _ = storage.save_snapshot(make_snapshot(created_at=1700000000.0))
            corrupt = Path(temp_dir) / "snapshot-99990101T000000000000Z.json"
            _ = corrupt.write_text("{not json", encoding="utf-8")

            # Act / Assert
            with pytest.raises(SnapshotError, match=corrupt.name):
                _ = storage.load_latest()
