"""
Custom exceptions for the catalog sync framework.
"""


class CatalogSyncError(Exception):
    """Base exception for all catalog sync errors."""
    pass


class FeedFetchError(CatalogSyncError):
    """
    Error retrieving a feed document.

    Raised when:
    - The feed URL is unreachable or the request times out
    - The server returns a non-success status
    - The response body is empty
    """

    def __init__(self, message: str, url: str = None, status_code: int = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FeedParseError(CatalogSyncError):
    """Feed body could not be parsed as XML."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class ConfigError(CatalogSyncError):
    """
    Error in sync configuration.

    Raised when:
    - Configuration file is missing or invalid
    - Required configuration values are not set
    """
    pass


class StateStoreError(CatalogSyncError):
    """Error reading or writing persisted cursor/lock state."""
    pass


class ItemProcessingError(CatalogSyncError):
    """
    Error mapping a single feed record onto the catalog.

    Attributes:
        key: Natural key of the record, if known
    """

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key


class MissingNaturalKeyError(ItemProcessingError):
    """Feed record has no item code."""
    pass


class AssetResolutionError(CatalogSyncError):
    """Remote asset could not be downloaded or stored."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url
