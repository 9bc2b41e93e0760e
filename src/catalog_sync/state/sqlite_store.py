"""
SQLite-based state store for the batch cursor and run lock.

Suitable for single-host deployments where every invocation of the sync
runs on the same machine and can reach the same database file.
"""

import logging
import sqlite3
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from ..core.exceptions import StateStoreError
from ..core.state_store import DEFAULT_LOCK_NAME, DEFAULT_LOCK_TTL_SECONDS, StateStore


logger = logging.getLogger(__name__)


class SqliteStateStore(StateStore):
    """
    SQLite-based implementation of the state store.

    Options live in a key/value table; locks in a table keyed by name with
    an epoch expiry. Lock acquisition runs inside BEGIN IMMEDIATE so two
    processes cannot both see the lock as free.
    """

    def __init__(
        self,
        db_path: Path,
        auto_init: bool = True,
        busy_timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the SQLite state store.

        Args:
            db_path: Path to the SQLite database file
            auto_init: Whether to create tables automatically
            busy_timeout: Seconds to wait on a locked database file
            clock: Callable returning the current epoch seconds
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self.clock = clock
        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are opened explicitly
        self.conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout,
            isolation_level=None,
        )
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite state store: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sync_options (
                option_key TEXT PRIMARY KEY,
                option_value TEXT,
                updated_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sync_locks (
                lock_name TEXT PRIMARY KEY,
                expires_at REAL NOT NULL,
                acquired_at TEXT NOT NULL
            )
        """)

        logger.debug("Initialized state store schema")

    def try_acquire_lock(
        self,
        name: str = DEFAULT_LOCK_NAME,
        ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
    ) -> bool:
        """
        Atomically take the lock if it is absent or expired.

        Returns:
            True if acquired, False if another run holds it
        """
        now = self.clock()
        cursor = self.conn.cursor()

        try:
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute(
                "SELECT expires_at FROM sync_locks WHERE lock_name = ?",
                (name,),
            )
            row = cursor.fetchone()

            if row is not None and row["expires_at"] > now:
                cursor.execute("ROLLBACK")
                logger.debug(f"Lock {name} is held until {row['expires_at']}")
                return False

            cursor.execute("""
                INSERT OR REPLACE INTO sync_locks (lock_name, expires_at, acquired_at)
                VALUES (?, ?, ?)
            """, (name, now + ttl_seconds, datetime.now(timezone.utc).isoformat()))
            cursor.execute("COMMIT")
            return True

        except sqlite3.Error as e:
            if self.conn.in_transaction:
                cursor.execute("ROLLBACK")
            logger.error(f"Failed to acquire lock {name}: {e}")
            raise StateStoreError(f"Failed to acquire lock {name}: {e}") from e

    def release_lock(self, name: str = DEFAULT_LOCK_NAME) -> None:
        """Delete the lock row."""
        try:
            self.conn.execute("DELETE FROM sync_locks WHERE lock_name = ?", (name,))
        except sqlite3.Error as e:
            logger.error(f"Failed to release lock {name}: {e}")
            raise StateStoreError(f"Failed to release lock {name}: {e}") from e

    def is_locked(self, name: str = DEFAULT_LOCK_NAME) -> bool:
        row = self.conn.execute(
            "SELECT expires_at FROM sync_locks WHERE lock_name = ?",
            (name,),
        ).fetchone()
        return row is not None and row["expires_at"] > self.clock()

    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        row = self.conn.execute(
            "SELECT option_value FROM sync_options WHERE option_key = ?",
            (key,),
        ).fetchone()
        if row is None or row["option_value"] is None:
            return default
        return row["option_value"]

    def set_option(self, key: str, value: Any) -> None:
        try:
            self.conn.execute("""
                INSERT OR REPLACE INTO sync_options (option_key, option_value, updated_at)
                VALUES (?, ?, ?)
            """, (key, str(value), datetime.now(timezone.utc).isoformat()))
            logger.debug(f"Set option {key}={value}")
        except sqlite3.Error as e:
            logger.error(f"Failed to set option {key}: {e}")
            raise StateStoreError(f"Failed to set option {key}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite state store connection")
