"""
Durable storage of hash snapshots.

Snapshots are JSON objects written with write-to-temp-then-replace so a
crash mid-write never corrupts the previous snapshot.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from .differ import HashSnapshot


logger = logging.getLogger(__name__)


def save_snapshot(snapshot: HashSnapshot, path: Union[str, Path]) -> bool:
    """
    Persist a snapshot atomically.

    Args:
        snapshot: key -> hash map
        path: Target file

    Returns:
        True on success, False on any I/O or serialization error
    """
    path = Path(path)
    tmp_name = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(snapshot, indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_name, path)
        tmp_name = None
        logger.debug(f"Saved snapshot with {len(snapshot)} keys to {path}")
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save snapshot to {path}: {e}")
        return False

    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError as e:
                logger.warning(f"Could not remove temp snapshot {tmp_name}: {e}")


def load_snapshot(path: Union[str, Path]) -> HashSnapshot:
    """
    Load a snapshot.

    A missing, unreadable or invalid file yields an empty snapshot; the
    absence of prior state is a normal first run.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug(f"No snapshot at {path}; starting empty")
        return {}
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable snapshot {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring snapshot {path}: expected a JSON object")
        return {}

    return {str(k): str(v) for k, v in data.items()}


class SnapshotStore:
    """
    Snapshot file bound to a path.

    Example:
        >>> store = SnapshotStore("local/state/items_snapshot.json")
        >>> previous = store.load()
        >>> store.save(current)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> HashSnapshot:
        return load_snapshot(self.path)

    def save(self, snapshot: HashSnapshot) -> bool:
        return save_snapshot(snapshot, self.path)
