"""
CLI entry point for rally standings.

Parses arguments, loads the configuration, wires components and runs one
fetch cycle.
"""

import argparse
import sys
from argparse import Namespace
from pathlib import Path

from .config import AppConfig, load_config
from .exceptions import ConfigurationError, SnapshotError
from .fetchers.http_fetcher import BatchedFetcher
from .fetchers.response_cache import ResponseCache
from .formatting import describe_changes, standings_table
from .interfaces import IdentityResolver
from .leaderboard_api import LeaderboardApi, decode_leaderboard, decode_rank
from .logging_config import get_logger, setup_logging
from .models import LeaderboardEntry
from .orchestrator import CycleReport, Orchestrator
from .rankers.time_ranker import TimeRanker
from .resolvers.display_name_resolver import DisplayNameResolver
from .resolvers.rank_correlation_resolver import RankCorrelationResolver
from .storage.json_storage import JSONSnapshotStorage


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Rally Standings - leaderboard attribution and change detection"
    )
    _ = parser.add_argument(
        "--config",
        required=True,
        help="Path to the JSON configuration file"
    )
    _ = parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore the response cache even if the configuration enables it"
    )
    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not persist the new snapshot"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )
    return parser.parse_args(argv)


def wire_components(config: AppConfig, use_cache: bool = True) -> Orchestrator:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")

    cache = None
    if use_cache and config.cache_enabled:
        logger.info(f"Using response cache in {config.cache_dir}")
        cache = ResponseCache(config.cache_dir)

    leaderboard_fetcher = BatchedFetcher[list[LeaderboardEntry]](
        decode_leaderboard,
        max_connections=config.max_connections,
        timeout=config.timeout_seconds,
        cache=cache,
        name="leaderboard_fetcher",
    )
    rank_fetcher = BatchedFetcher[int | None](
        decode_rank,
        max_connections=config.max_connections,
        timeout=config.timeout_seconds,
        cache=cache,
        name="rank_fetcher",
    )

    logger.info(f"Creating {config.identity} identity resolver")
    resolver: IdentityResolver
    if config.identity == "display-name":
        resolver = DisplayNameResolver(config.drivers)
    else:
        resolver = RankCorrelationResolver(config.drivers)

    return Orchestrator(
        config=config,
        leaderboard_fetcher=leaderboard_fetcher,
        rank_fetcher=rank_fetcher,
        resolver=resolver,
        storage=JSONSnapshotStorage(config.snapshot_dir),
        ranker=TimeRanker(),
        api=LeaderboardApi(config.base_url, config.platform),
    )


def print_report(report: CycleReport) -> None:
    """Print standings tables and change events."""
    for standings in report.standings:
        print()
        print(standings.rally.title)
        print(standings_table(standings))

    print()
    if not report.changes:
        print("No changes since the previous snapshot.")
    for changes in report.changes:
        print("\n".join(describe_changes(changes)))
    if report.failed_requests:
        print(f"\n{report.failed_requests} requests failed; see the log for details.")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, debug=args.debug)
    logger = get_logger("main")

    try:
        config = load_config(Path(args.config))
        orchestrator = wire_components(config, use_cache=not args.no_cache)
        report = orchestrator.run_cycle(persist=not args.dry_run)
    except (ConfigurationError, SnapshotError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(1)

    print_report(report)
    if report.snapshot_path is not None:
        print(f"\nSnapshot saved to {report.snapshot_path}")


if __name__ == "__main__":
    main()
