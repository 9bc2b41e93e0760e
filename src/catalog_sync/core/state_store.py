"""
State store interface for the batch cursor and the run lock.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


DEFAULT_LOCK_NAME = "import_lock"
DEFAULT_OFFSET_NAME = "import_offset"
DEFAULT_LOCK_TTL_SECONDS = 30 * 60


class StateStore(ABC):
    """
    Abstract base class for state stores.

    State stores persist the resumable batch offset and the time-bounded
    lock that keeps two sync runs from overlapping. Generic options
    (key/value strings) are stored alongside.
    """

    @abstractmethod
    def try_acquire_lock(
        self,
        name: str = DEFAULT_LOCK_NAME,
        ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
    ) -> bool:
        """
        Atomically set the lock if it is absent or expired.

        Never blocks.

        Args:
            name: Lock name
            ttl_seconds: Seconds until the lock expires on its own

        Returns:
            True if this call acquired the lock
        """
        pass

    @abstractmethod
    def release_lock(self, name: str = DEFAULT_LOCK_NAME) -> None:
        """Clear the lock unconditionally."""
        pass

    @abstractmethod
    def is_locked(self, name: str = DEFAULT_LOCK_NAME) -> bool:
        """Return True if the lock is held and unexpired."""
        pass

    @abstractmethod
    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a persisted option value."""
        pass

    @abstractmethod
    def set_option(self, key: str, value: Any) -> None:
        """Persist an option value (stored as a string)."""
        pass

    def get_offset(self, name: str = DEFAULT_OFFSET_NAME) -> int:
        """
        Get the persisted cursor offset.

        Absent, unparseable or negative values read as 0.
        """
        raw = self.get_option(name)
        if raw is None:
            return 0
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return 0
        return max(0, value)

    def set_offset(self, value: int, name: str = DEFAULT_OFFSET_NAME) -> None:
        """Persist the cursor offset."""
        value = int(value)
        if value < 0:
            raise ValueError(f"Offset must be non-negative, got {value}")
        self.set_option(name, value)

    def reset(self, name: str = DEFAULT_OFFSET_NAME) -> None:
        """Set the offset back to 0. Does not touch the lock."""
        self.set_offset(0, name)

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass
