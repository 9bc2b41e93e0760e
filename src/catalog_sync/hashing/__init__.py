"""
Change detection for feed records.

This module provides:
- Canonical hashing: key-order independent content hashes
- Snapshots: key -> hash maps of a record set, and diffs between them
- Snapshot store: atomic persistence of snapshots between runs
"""

from .canonical import normalize, serialize, canonicalize, content_hash
from .differ import (
    HashSnapshot, SnapshotDiff, ChangeSet,
    record_key, build_snapshot, diff_snapshots, filter_changed,
)
from .snapshot_store import SnapshotStore, save_snapshot, load_snapshot

__all__ = [
    "normalize",
    "serialize",
    "canonicalize",
    "content_hash",
    "HashSnapshot",
    "SnapshotDiff",
    "ChangeSet",
    "record_key",
    "build_snapshot",
    "diff_snapshots",
    "filter_changed",
    "SnapshotStore",
    "save_snapshot",
    "load_snapshot",
]
