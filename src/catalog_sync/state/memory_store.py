"""
In-memory state store.

Holds the cursor and locks in process memory. Intended for tests and
one-off dry runs; nothing survives the process.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..core.state_store import DEFAULT_LOCK_NAME, DEFAULT_LOCK_TTL_SECONDS, StateStore


logger = logging.getLogger(__name__)


class InMemoryStateStore(StateStore):
    """
    State store backed by plain dicts.

    Args:
        clock: Callable returning the current time in seconds; injectable
            so tests can move time past a lock's expiry
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._options: Dict[str, str] = {}
        self._locks: Dict[str, float] = {}

    def try_acquire_lock(
        self,
        name: str = DEFAULT_LOCK_NAME,
        ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
    ) -> bool:
        now = self.clock()
        expires_at = self._locks.get(name)
        if expires_at is not None and expires_at > now:
            logger.debug(f"Lock {name} held until {expires_at}")
            return False

        self._locks[name] = now + ttl_seconds
        return True

    def release_lock(self, name: str = DEFAULT_LOCK_NAME) -> None:
        self._locks.pop(name, None)

    def is_locked(self, name: str = DEFAULT_LOCK_NAME) -> bool:
        expires_at = self._locks.get(name)
        return expires_at is not None and expires_at > self.clock()

    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._options.get(key, default)

    def set_option(self, key: str, value: Any) -> None:
        self._options[key] = str(value)
