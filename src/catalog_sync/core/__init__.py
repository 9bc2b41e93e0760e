"""
Core abstractions and interfaces for the catalog sync framework.
"""

from .models import (
    FeedRecord, OutcomeStatus, BatchStatus, AdvancePolicy,
    ProcessOutcome, AuxMaps, EntryAttribute, CatalogEntry, Asset, BatchResult,
)
from .connector import Connector, ConnectorRequest, ConnectorResponse
from .state_store import StateStore
from .catalog import CatalogStore, AssetIndex
from .storage import AssetStore
from .exceptions import (
    CatalogSyncError, FeedFetchError, FeedParseError, ConfigError,
    StateStoreError, ItemProcessingError, MissingNaturalKeyError,
    AssetResolutionError,
)

__all__ = [
    "FeedRecord",
    "OutcomeStatus",
    "BatchStatus",
    "AdvancePolicy",
    "ProcessOutcome",
    "AuxMaps",
    "EntryAttribute",
    "CatalogEntry",
    "Asset",
    "BatchResult",
    "Connector",
    "ConnectorRequest",
    "ConnectorResponse",
    "StateStore",
    "CatalogStore",
    "AssetIndex",
    "AssetStore",
    "CatalogSyncError",
    "FeedFetchError",
    "FeedParseError",
    "ConfigError",
    "StateStoreError",
    "ItemProcessingError",
    "MissingNaturalKeyError",
    "AssetResolutionError",
]
