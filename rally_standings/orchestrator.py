"""
Orchestrator for one rally standings fetch cycle.

Coordinates fetchers, identity resolver, ranker, differ and storage:
fetch -> resolve -> assemble -> classify -> diff -> persist.
Only fetching is concurrent; everything after it runs synchronously on fully
materialized data.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .config import AppConfig
from .differs.snapshot_differ import diff_snapshots
from .interfaces import Fetcher, IdentityResolver, SnapshotStorage
from .leaderboard_api import LeaderboardApi
from .logging_config import get_logger
from .models import (
    FetchResult,
    LeaderboardEntry,
    RallyChanges,
    RallyOutcomes,
    RallyStandings,
    Snapshot,
    Stage,
    StageOutcome,
)
from .rankers.assembler import assemble_outcomes
from .rankers.time_ranker import TimeRanker


@dataclass
class CycleReport:
    """Everything one fetch cycle produced."""

    snapshot: Snapshot
    previous: Snapshot | None
    standings: list[RallyStandings]
    changes: list[RallyChanges]
    failed_requests: int
    snapshot_path: Path | None = None


class Orchestrator:
    """Main orchestrator for a fetch cycle."""

    def __init__(
        self,
        config: AppConfig,
        leaderboard_fetcher: Fetcher[list[LeaderboardEntry]],
        rank_fetcher: Fetcher[int | None],
        resolver: IdentityResolver,
        storage: SnapshotStorage,
        ranker: TimeRanker | None = None,
        api: LeaderboardApi | None = None,
    ):
        """Initialize orchestrator with all components."""
        self.config: AppConfig = config
        self.leaderboard_fetcher: Fetcher[list[LeaderboardEntry]] = leaderboard_fetcher
        self.rank_fetcher: Fetcher[int | None] = rank_fetcher
        self.resolver: IdentityResolver = resolver
        self.storage: SnapshotStorage = storage
        self.ranker: TimeRanker = ranker or TimeRanker()
        self.api: LeaderboardApi = api or LeaderboardApi(config.base_url, config.platform)

        # Setup logger
        self.logger: Logger = get_logger("orchestrator")

    def run_cycle(self, persist: bool = True) -> CycleReport:
        """
        Run one fetch cycle.

        Args:
            persist: Save the new snapshot after diffing

        Raises:
            SnapshotError: If the previous snapshot cannot be loaded; raised
                before any request is made
        """
        self.logger.info(
            f"Starting fetch cycle: {len(self.config.rallies)} rallies, {len(self.config.drivers)} drivers"
        )
        previous = self.storage.load_latest()
        if previous is None:
            self.logger.info("No previous snapshot, every result will be reported as new")

        stages = self.config.stages()
        resolved, failed = self._fetch_and_resolve(stages)

        standings = list[RallyStandings]()
        results = dict[str, RallyOutcomes]()
        for rally in self.config.rallies:
            outcomes = assemble_outcomes(
                self.config.driver_names,
                rally.stage_count,
                [resolved[stage] for stage in rally.stages],
            )
            results[rally.title] = outcomes
            standings.append(self.ranker.classify(rally, outcomes))

        snapshot = Snapshot(
            platform=self.config.platform,
            drivers=tuple(self.config.driver_names),
            rallies=tuple(self.config.rallies),
            results=results,
        )
        changes = diff_snapshots(snapshot, previous, self.ranker)
        self.logger.info(f"{len(changes)} rallies with changes")

        snapshot_path = self.storage.save_snapshot(snapshot) if persist else None
        return CycleReport(
            snapshot=snapshot,
            previous=previous,
            standings=standings,
            changes=changes,
            failed_requests=failed,
            snapshot_path=snapshot_path,
        )

    def _fetch_and_resolve(self, stages: list[Stage]) -> tuple[dict[Stage, list[tuple[str, StageOutcome]]], int]:
        """Fetch both batches and resolve every stage; returns outcomes and the failure count."""
        drivers = self.config.drivers

        leaderboard_urls = [self.api.population_url(stage, drivers) for stage in stages]
        rank_urls = [self.api.rank_url(stage, driver) for stage in stages for driver in drivers]

        leaderboards = self.leaderboard_fetcher.fetch_all(leaderboard_urls)
        ranks = self.rank_fetcher.fetch_all(rank_urls)
        failed = sum(1 for r in leaderboards if not r.ok) + sum(1 for r in ranks if not r.ok)

        resolved = dict[Stage, list[tuple[str, StageOutcome]]]()
        for i, stage in enumerate(stages):
            world_ranks, failed_ranks = self._world_ranks(ranks[i * len(drivers):(i + 1) * len(drivers)])
            leaderboard = leaderboards[i]
            if not leaderboard.ok or leaderboard.payload is None:
                self.logger.warning(f"{stage.label}: no leaderboard data, stage contributes no outcomes")
                resolved[stage] = []
                continue
            resolved[stage] = self.resolver.resolve(stage, leaderboard.payload, world_ranks, failed_ranks)
            self.logger.debug(f"{stage.label}: resolved {len(resolved[stage])} of {len(leaderboard.payload)} rows")
        return resolved, failed

    def _world_ranks(self, results: list[FetchResult[int | None]]) -> tuple[dict[str, int | None], set[str]]:
        """Driver -> world rank (None for no time), and the drivers whose query failed."""
        world_ranks = dict[str, int | None]()
        failed = set[str]()
        for driver, result in zip(self.config.drivers, results):
            world_ranks[driver.name] = result.payload if result.ok else None
            if not result.ok:
                failed.add(driver.name)
        return world_ranks, failed
