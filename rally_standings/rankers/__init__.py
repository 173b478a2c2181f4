"""
Result assembly and ranking.

Available components:
- assemble_outcomes: Folds per-stage resolved outcomes into per-driver arrays
- TimeRanker: Classifies drivers into full and partial results and ranks
  them by elapsed time
"""

from .assembler import assemble_outcomes
from .time_ranker import TimeRanker

__all__ = ["TimeRanker", "assemble_outcomes"]
