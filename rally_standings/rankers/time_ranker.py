"""
Time classifier and ranker.

Splits drivers into full and partial completions of a rally, sorts them, and
derives the fastest total and fastest time on each stage.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from ..exceptions import ValidationError
from ..logging_config import get_logger
from ..models import FullResult, PartialResult, Rally, RallyOutcomes, RallyStandings


class TimeRanker:
    """
    Ranker ordering drivers by elapsed time.

    Stateless: every call recomputes from its input, so repeated calls on the
    same outcomes give identical results. Ties keep the input order of the
    outcome mapping.
    """

    def __init__(self) -> None:
        self.logger: Logger = get_logger("time_ranker")

    def classify(self, rally: Rally, outcomes: RallyOutcomes) -> RallyStandings:
        """
        Classify and rank the drivers of one rally.

        Args:
            rally: The rally the outcomes belong to
            outcomes: Driver -> outcome array, one slot per stage

        Returns:
            RallyStandings with sorted full and partial results

        Raises:
            ValidationError: If an outcome array has the wrong length
        """
        stage_count = rally.stage_count
        full = list[FullResult]()
        partial = list[PartialResult]()
        no_times = list[str]()

        for driver, stage_outcomes in outcomes.items():
            if len(stage_outcomes) != stage_count:
                raise ValidationError(
                    f"{driver!r} has {len(stage_outcomes)} outcomes, rally {rally.title!r} has {stage_count} stages"
                )
            times = tuple(o.time_ms if o is not None else None for o in stage_outcomes)
            cars = tuple(o.car_id if o is not None else None for o in stage_outcomes)
            world_ranks = tuple(o.world_rank if o is not None else None for o in stage_outcomes)
            finished = sum(1 for t in times if t is not None)
            total = sum(t for t in times if t is not None)

            if finished == stage_count:
                full.append(
                    FullResult(
                        driver=driver,
                        total_time_ms=total,
                        stage_times=tuple(t for t in times if t is not None),
                        cars=tuple(c for c in cars if c is not None),
                        world_ranks=world_ranks,
                    )
                )
            elif finished == 0:
                no_times.append(driver)
            else:
                partial.append(
                    PartialResult(
                        driver=driver,
                        finished_stages=finished,
                        total_time_ms=total,
                        stage_times=times,
                        cars=cars,
                        world_ranks=world_ranks,
                    )
                )

        # list.sort is stable, so equal keys keep input order
        full.sort(key=lambda r: r.total_time_ms)
        partial.sort(key=lambda r: (-r.finished_stages, r.total_time_ms))

        fastest_total = min((r.total_time_ms for r in full), default=None)
        fastest_per_stage = [
            min((o[i].time_ms for o in outcomes.values() if o[i] is not None), default=None)
            for i in range(stage_count)
        ]

        self.logger.debug(
            f"{rally.title}: {len(full)} full, {len(partial)} partial, {len(no_times)} without times"
        )
        return RallyStandings(
            rally=rally,
            full=full,
            partial=partial,
            no_times=no_times,
            fastest_total=fastest_total,
            fastest_per_stage=fastest_per_stage,
        )

    def stage_order(self, outcomes: RallyOutcomes, stage_index: int) -> list[tuple[str, int]]:
        """
        Drivers with a time on one stage, fastest first.

        Returns:
            (driver, time_ms) pairs; position + 1 is the stage rank
        """
        timed = [
            (driver, stage_outcomes[stage_index].time_ms)
            for driver, stage_outcomes in outcomes.items()
            if stage_outcomes[stage_index] is not None
        ]
        timed.sort(key=lambda item: item[1])
        return timed

    def overall_order(self, standings: RallyStandings) -> list[tuple[str, int]]:
        """
        Drivers that completed every stage, fastest total first.

        Returns:
            (driver, total_time_ms) pairs; position + 1 is the overall rank
        """
        return [(r.driver, r.total_time_ms) for r in standings.full]
