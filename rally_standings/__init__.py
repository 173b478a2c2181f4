"""
Rally Standings - leaderboard attribution and change detection

Fetches per-stage leaderboards for a group of drivers, recovers which anonymous
row belongs to which driver, ranks rally results, and reports what changed
since the previous snapshot.
"""

from .models import (
    ChangeEvent,
    ChangeKind,
    Driver,
    FullResult,
    LeaderboardEntry,
    PartialResult,
    Rally,
    RallyChanges,
    RallyStandings,
    Snapshot,
    Stage,
    StageChanges,
    StageOutcome,
)
from .interfaces import Fetcher, IdentityResolver, SnapshotStorage
from .differs.snapshot_differ import diff_snapshots
from .orchestrator import CycleReport, Orchestrator

__version__ = "0.1.0"
__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "CycleReport",
    "Driver",
    "Fetcher",
    "FullResult",
    "IdentityResolver",
    "LeaderboardEntry",
    "Orchestrator",
    "PartialResult",
    "Rally",
    "RallyChanges",
    "RallyStandings",
    "Snapshot",
    "SnapshotStorage",
    "Stage",
    "StageChanges",
    "StageOutcome",
    "diff_snapshots",
]
