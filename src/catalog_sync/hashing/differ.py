"""
Hash-map snapshots and snapshot diffing.

A snapshot maps a record key to the content hash of the record. Diffing
the previous run's snapshot against the current one tells which records
were added, removed, changed or left unchanged.
"""

import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .canonical import DEFAULT_ALGORITHM, content_hash


logger = logging.getLogger(__name__)


HashSnapshot = Dict[str, str]


@dataclass
class SnapshotDiff:
    """
    Classification of keys between two snapshots.

    The four lists are pairwise disjoint and together cover every key of
    both snapshots.
    """
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "changed": list(self.changed),
            "unchanged": list(self.unchanged),
        }


@dataclass
class ChangeSet:
    """
    Records that need work, resolved from a snapshot diff.

    Attributes:
        added: Records whose key was not in the old snapshot
        changed: Records whose hash differs from the old snapshot
        changed_keys: Keys of the changed records
        removed_keys: Keys present before but missing now
        snapshot: The freshly built snapshot, to be persisted by the caller
    """
    added: List[Any] = field(default_factory=list)
    changed: List[Any] = field(default_factory=list)
    changed_keys: List[str] = field(default_factory=list)
    removed_keys: List[str] = field(default_factory=list)
    snapshot: HashSnapshot = field(default_factory=dict)


def record_key(record: Any, index: int, key_field: Optional[str] = None) -> str:
    """
    Derive the snapshot key of a record.

    Uses the value of key_field when given and readable on the record
    (mapping key or attribute), otherwise the positional index. Never raises.
    """
    if key_field is None:
        return str(index)

    try:
        if isinstance(record, Mapping):
            value = record.get(key_field)
        else:
            value = getattr(record, key_field, None)
    except Exception as e:
        logger.debug(f"Could not read key field {key_field!r} at index {index}: {e}")
        value = None

    if value is None:
        return str(index)
    return str(value)


def build_snapshot(
    records: Iterable[Any],
    key_field: Optional[str] = None,
    algorithm: str = DEFAULT_ALGORITHM,
) -> HashSnapshot:
    """
    Build a key -> content hash snapshot of a record list.

    Args:
        records: Records to hash
        key_field: Field to use as the key (positional index if None or missing)
        algorithm: hashlib algorithm name

    Returns:
        Snapshot dict, in record order
    """
    snapshot: HashSnapshot = {}
    for index, record in enumerate(records):
        key = record_key(record, index, key_field)
        if key in snapshot:
            logger.debug(f"Duplicate snapshot key {key!r}; later record wins")
        snapshot[key] = content_hash(record, algorithm)
    return snapshot


def diff_snapshots(old: HashSnapshot, new: HashSnapshot) -> SnapshotDiff:
    """
    Compare two snapshots.

    added / changed / unchanged follow the order of the new snapshot,
    removed follows the order of the old one. Hashes on common keys are
    compared with hmac.compare_digest.
    """
    diff = SnapshotDiff()

    for key, new_hash in new.items():
        if key not in old:
            diff.added.append(key)
        elif hmac.compare_digest(str(old[key]), str(new_hash)):
            diff.unchanged.append(key)
        else:
            diff.changed.append(key)

    diff.removed = [key for key in old if key not in new]
    return diff


def filter_changed(
    records: Sequence[Any],
    old_snapshot: HashSnapshot,
    key_field: Optional[str] = None,
    algorithm: str = DEFAULT_ALGORITHM,
) -> ChangeSet:
    """
    Return only the records that differ from the old snapshot.

    Builds the new snapshot, diffs it against old_snapshot and maps the
    added / changed keys back to full records using the same key rule.
    """
    new_snapshot = build_snapshot(records, key_field, algorithm)
    diff = diff_snapshots(old_snapshot, new_snapshot)

    key_to_record: Dict[str, Any] = {}
    for index, record in enumerate(records):
        key_to_record[record_key(record, index, key_field)] = record

    return ChangeSet(
        added=[key_to_record[k] for k in diff.added if k in key_to_record],
        changed=[key_to_record[k] for k in diff.changed if k in key_to_record],
        changed_keys=list(diff.changed),
        removed_keys=list(diff.removed),
        snapshot=new_snapshot,
    )
