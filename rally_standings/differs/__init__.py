"""
Change detection between fetch cycles.

Available components:
- diff_snapshots: Compares the current snapshot with the previous one and
  returns ordered change events per rally and per stage
"""

from .snapshot_differ import classify_change, diff_snapshots

__all__ = ["classify_change", "diff_snapshots"]
