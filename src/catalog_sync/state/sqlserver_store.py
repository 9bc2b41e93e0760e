"""
SQL Server-based state store for the batch cursor and run lock.

Use when sync invocations may run on different hosts that share a
database rather than a filesystem.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pyodbc

from ..core.exceptions import StateStoreError
from ..core.state_store import DEFAULT_LOCK_NAME, DEFAULT_LOCK_TTL_SECONDS, StateStore


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    # DATETIME2 columns hold naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlServerStateStore(StateStore):
    """
    SQL Server-based implementation of the state store.

    Lock acquisition is a single MERGE under HOLDLOCK, so concurrent
    callers serialize on the lock row and at most one of them succeeds.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        host: str = "localhost",
        port: int = 1433,
        database: str = "CatalogSync",
        username: str = "sa",
        password: Optional[str] = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        schema: str = "sync",
        auto_init: bool = True,
        trust_server_certificate: bool = True,
    ):
        """
        Initialize the SQL Server state store.

        Args:
            connection_string: Full ODBC connection string (if provided, other params ignored)
            host: SQL Server host
            port: SQL Server port
            database: Database name
            username: Database username
            password: Database password
            driver: ODBC driver name
            schema: Schema name for tables (default: 'sync')
            auto_init: Whether to create schema and tables automatically
            trust_server_certificate: Whether to trust self-signed certificates
        """
        if not self._is_valid_identifier(schema):
            raise ValueError(f"Invalid schema name: {schema}")

        self.schema = schema

        if connection_string:
            self.connection_string = connection_string
        else:
            trust_cert = "yes" if trust_server_certificate else "no"
            self.connection_string = (
                f"Driver={{{driver}}};"
                f"Server={host},{port};"
                f"Database={database};"
                f"UID={username};"
                f"PWD={password};"
                f"TrustServerCertificate={trust_cert}"
            )

        self.conn = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _is_valid_identifier(self, name: str) -> bool:
        """
        Validate that a name is a safe SQL identifier.

        Must start with a letter or underscore, contain only letters,
        digits and underscores, and be at most 128 characters.
        """
        if not name or len(name) > 128:
            return False
        return re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', name) is not None

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self.conn = pyodbc.connect(self.connection_string)
            logger.debug(f"Connected to SQL Server state store (schema: {self.schema})")
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to SQL Server: {e}")
            raise StateStoreError(f"Failed to connect to SQL Server: {e}") from e

    def _init_schema(self) -> None:
        """Initialize database schema and tables."""
        cursor = self.conn.cursor()

        try:
            # Schema name is validated in __init__; CREATE SCHEMA cannot take parameters
            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = ?)
                BEGIN
                    EXEC('CREATE SCHEMA [{self.schema}]')
                END
            """, (self.schema,))

            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.tables t
                               JOIN sys.schemas s ON t.schema_id = s.schema_id
                               WHERE t.name = 'sync_options' AND s.name = ?)
                BEGIN
                    CREATE TABLE [{self.schema}].[sync_options] (
                        option_key NVARCHAR(200) PRIMARY KEY,
                        option_value NVARCHAR(MAX),
                        updated_at DATETIME2 NOT NULL
                    )
                END
            """, (self.schema,))

            cursor.execute(f"""
                IF NOT EXISTS (SELECT * FROM sys.tables t
                               JOIN sys.schemas s ON t.schema_id = s.schema_id
                               WHERE t.name = 'sync_locks' AND s.name = ?)
                BEGIN
                    CREATE TABLE [{self.schema}].[sync_locks] (
                        lock_name NVARCHAR(200) PRIMARY KEY,
                        expires_at DATETIME2 NOT NULL,
                        acquired_at DATETIME2 NOT NULL
                    )
                END
            """, (self.schema,))

            self.conn.commit()
            logger.debug("Initialized SQL Server state store schema")

        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to initialize schema: {e}")
            raise StateStoreError(f"Failed to initialize schema: {e}") from e

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
        now = _utcnow()
        expires_at = now + timedelta(seconds=ttl_seconds)

        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                MERGE [{self.schema}].[sync_locks] WITH (HOLDLOCK) AS target
                USING (SELECT ? AS lock_name) AS source
                ON target.lock_name = source.lock_name
                WHEN MATCHED AND target.expires_at <= ? THEN
                    UPDATE SET expires_at = ?, acquired_at = ?
                WHEN NOT MATCHED THEN
                    INSERT (lock_name, expires_at, acquired_at) VALUES (?, ?, ?);
            """, (name, now, expires_at, now, name, expires_at, now))
            acquired = cursor.rowcount == 1
            self.conn.commit()
            return acquired

        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to acquire lock {name}: {e}")
            raise StateStoreError(f"Failed to acquire lock {name}: {e}") from e

    def release_lock(self, name: str = DEFAULT_LOCK_NAME) -> None:
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"DELETE FROM [{self.schema}].[sync_locks] WHERE lock_name = ?",
                (name,),
            )
            self.conn.commit()
        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to release lock {name}: {e}")
            raise StateStoreError(f"Failed to release lock {name}: {e}") from e

    def is_locked(self, name: str = DEFAULT_LOCK_NAME) -> bool:
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT expires_at FROM [{self.schema}].[sync_locks] WHERE lock_name = ?",
            (name,),
        )
        row = cursor.fetchone()
        return row is not None and row[0] > _utcnow()

    def get_option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute(
            f"SELECT option_value FROM [{self.schema}].[sync_options] WHERE option_key = ?",
            (key,),
        )
        row = cursor.fetchone()
        if row is None or row[0] is None:
            return default
        return row[0]

    def set_option(self, key: str, value: Any) -> None:
        now = _utcnow()
        try:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                MERGE [{self.schema}].[sync_options] WITH (HOLDLOCK) AS target
                USING (SELECT ? AS option_key) AS source
                ON target.option_key = source.option_key
                WHEN MATCHED THEN
                    UPDATE SET option_value = ?, updated_at = ?
                WHEN NOT MATCHED THEN
                    INSERT (option_key, option_value, updated_at) VALUES (?, ?, ?);
            """, (key, str(value), now, key, str(value), now))
            self.conn.commit()
        except pyodbc.Error as e:
            self.conn.rollback()
            logger.error(f"Failed to set option {key}: {e}")
            raise StateStoreError(f"Failed to set option {key}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            try:
                self.conn.close()
            except pyodbc.Error as e:
                logger.warning(f"Error closing SQL Server connection: {e}")
            self.conn = None
            logger.debug("Closed SQL Server state store connection")
