"""
State store implementations for the batch cursor and run lock.

The default backend is SQLite (SqliteStateStore). SQL Server
(SqlServerStateStore) is available when several hosts share one
database; it needs the 'sqlserver' extra (pyodbc).

To select backend, set the SYNC_STATE_BACKEND environment variable:
    - SYNC_STATE_BACKEND=sqlite (default)
    - SYNC_STATE_BACKEND=sqlserver
    - SYNC_STATE_BACKEND=memory (tests and dry runs)
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..core.state_store import StateStore
from .memory_store import InMemoryStateStore
from .sqlite_store import SqliteStateStore


logger = logging.getLogger(__name__)


def _get_sqlserver_store():
    # pyodbc is optional; import only when the backend is requested
    from .sqlserver_store import SqlServerStateStore
    return SqlServerStateStore


def create_state_store(
    backend: Optional[str] = None,
    # SQLite options
    db_path: Optional[Union[str, Path]] = None,
    # SQL Server options
    connection_string: Optional[str] = None,
    host: str = "localhost",
    port: int = 1433,
    database: str = "CatalogSync",
    username: str = "sa",
    password: Optional[str] = None,
    driver: str = "ODBC Driver 18 for SQL Server",
    schema: str = "sync",
    trust_server_certificate: bool = True,
    auto_init: bool = True,
) -> StateStore:
    """
    Factory function to create the appropriate state store based on configuration.

    Args:
        backend: 'sqlite', 'sqlserver' or 'memory'. Defaults to the
            SYNC_STATE_BACKEND env var, then 'sqlite'.

        SQLite options:
            db_path: Path to SQLite database file

        SQL Server options:
            connection_string: Full ODBC connection string
            host, port, database, username, password, driver, schema,
            trust_server_certificate: Discrete connection settings
            auto_init: Auto-create schema/tables

    Returns:
        StateStore instance

    Raises:
        ValueError: If backend is not recognized
    """
    if backend is None:
        backend = os.environ.get("SYNC_STATE_BACKEND", "sqlite")
    backend = backend.lower()

    if backend == "sqlite":
        if db_path is None:
            db_path = Path("local/state/sync_state.db")
        return SqliteStateStore(db_path=Path(db_path), auto_init=auto_init)

    if backend == "memory":
        logger.warning("Using in-memory state store; cursor and lock will not persist")
        return InMemoryStateStore()

    if backend == "sqlserver":
        SqlServerStateStore = _get_sqlserver_store()

        if password is None:
            password = os.environ.get("SYNC_SQLSERVER_PASSWORD")
        if connection_string is None:
            connection_string = os.environ.get("SYNC_SQLSERVER_CONN_STR")

        return SqlServerStateStore(
            connection_string=connection_string,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            driver=driver,
            schema=schema,
            auto_init=auto_init,
            trust_server_certificate=trust_server_certificate,
        )

    raise ValueError(
        f"Unknown backend: {backend}. "
        "Supported backends: 'sqlite' (default), 'sqlserver', 'memory'"
    )


__all__ = ["InMemoryStateStore", "SqliteStateStore", "create_state_store"]
