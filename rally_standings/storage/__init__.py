"""
Storage implementations.

Provides implementations of the SnapshotStorage interface for persisting
snapshots between fetch cycles.

Available implementations:
- JSONSnapshotStorage: One timestamped JSON document per cycle in a directory
"""

from .json_storage import JSONSnapshotStorage, snapshot_from_document, snapshot_to_document

__all__ = ["JSONSnapshotStorage", "snapshot_from_document", "snapshot_to_document"]
