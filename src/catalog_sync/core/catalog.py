"""
Catalog store and asset index interfaces.

The catalog store is the external system products are written to. The
sync engine only needs the operations below; any backend providing them
can be plugged into the item processor.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import Asset, CatalogEntry


class CatalogStore(ABC):
    """
    Abstract base class for catalog stores.

    Entries are matched by SKU (the feed item code). Category terms form a
    hierarchy: a term is identified by its name together with its parent.
    """

    @abstractmethod
    def get_entry_by_sku(self, sku: str) -> Optional[CatalogEntry]:
        """
        Look up an entry by SKU.

        Returns:
            The entry if found, None otherwise
        """
        pass

    @abstractmethod
    def save_entry(self, entry: CatalogEntry) -> int:
        """
        Insert or update an entry.

        Assigns entry.entry_id on first save. A non-empty entry.category_ids
        replaces the entry's category terms in the same write; an empty list
        leaves them unchanged.

        Returns:
            The entry identifier
        """
        pass

    @abstractmethod
    def resolve_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """
        Return the id of the category term (name, parent), creating it if needed.

        Resolving an existing term must not create a duplicate.
        """
        pass

    @abstractmethod
    def set_entry_categories(self, entry_id: int, category_ids: List[int]) -> None:
        """Replace the category terms attached to an entry."""
        pass

    @abstractmethod
    def get_entry_categories(self, entry_id: int) -> List[int]:
        """Return the category term ids attached to an entry."""
        pass

    @abstractmethod
    def count_entries(self) -> int:
        """Return the number of entries in the catalog."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass


class AssetIndex(ABC):
    """
    Index of imported assets by source URL and by content hash.

    Lets the asset resolver reuse an asset instead of fetching it again.
    """

    @abstractmethod
    def find_asset_by_url(self, source_url: str) -> Optional[Asset]:
        pass

    @abstractmethod
    def find_asset_by_hash(self, file_hash: str) -> Optional[Asset]:
        pass

    @abstractmethod
    def get_asset(self, asset_id: int) -> Optional[Asset]:
        pass

    @abstractmethod
    def add_asset(
        self,
        source_url: str,
        file_hash: Optional[str],
        file_path: Optional[str],
    ) -> Asset:
        """Register a newly stored asset and return it with its id."""
        pass

    @abstractmethod
    def delete_asset(self, asset_id: int) -> bool:
        """
        Remove an asset record and detach it from any entry.

        Returns:
            True if the asset existed
        """
        pass

    @abstractmethod
    def list_assets(self, path_prefix: Optional[str] = None) -> List[Asset]:
        """
        List assets ordered by id.

        Args:
            path_prefix: Only assets whose file path starts with this
                prefix or whose source URL contains it
        """
        pass
