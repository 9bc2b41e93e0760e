"""
Catalog store implementations.

SqliteCatalogStore is the local catalog used by the CLI;
InMemoryCatalogStore backs tests and dry runs.
"""

from .memory_store import InMemoryCatalogStore
from .sqlite_store import SqliteCatalogStore

__all__ = ["InMemoryCatalogStore", "SqliteCatalogStore"]
