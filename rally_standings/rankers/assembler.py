"""
Result assembler.

Folds per-stage resolved outcomes into one outcome array per driver.
"""

from collections.abc import Sequence

from ..logging_config import get_logger
from ..models import RallyOutcomes, StageOutcome

# Module-level logger
logger = get_logger("assembler")


def assemble_outcomes(
    drivers: Sequence[str],
    stage_count: int,
    resolved_per_stage: Sequence[Sequence[tuple[str, StageOutcome]]],
) -> RallyOutcomes:
    """
    Build driver -> outcome array for one rally.

    Args:
        drivers: Configured drivers; fixes the iteration order of the result
        stage_count: Number of stages in the rally
        resolved_per_stage: For each stage, in rally order, the resolved
            (driver, outcome) pairs

    Returns:
        Mapping with one entry per configured driver, each an array of
        stage_count slots holding an outcome or None
    """
    if len(resolved_per_stage) != stage_count:
        raise ValueError(f"expected {stage_count} stages of outcomes, got {len(resolved_per_stage)}")

    slots: dict[str, list[StageOutcome | None]] = {name: [None] * stage_count for name in drivers}
    for stage_index, resolved in enumerate(resolved_per_stage):
        for name, outcome in resolved:
            if name not in slots:
                logger.warning(f"Ignoring outcome for unconfigured driver {name!r} on stage {stage_index + 1}")
                continue
            if slots[name][stage_index] is not None:
                logger.warning(f"Ignoring second outcome for {name!r} on stage {stage_index + 1}")
                continue
            slots[name][stage_index] = outcome

    return {name: tuple(outcomes) for name, outcomes in slots.items()}
