"""
In-memory catalog store and asset index.
"""

import copy
import logging
from typing import Dict, List, Optional, Tuple

from ..core.catalog import AssetIndex, CatalogStore
from ..core.models import Asset, CatalogEntry


logger = logging.getLogger(__name__)


class InMemoryCatalogStore(CatalogStore, AssetIndex):
    """
    Catalog store and asset index held in dicts.

    Entries are copied on the way in and out, so a caller only changes the
    store through save_entry().
    """

    def __init__(self):
        self._entries: Dict[str, CatalogEntry] = {}
        self._categories: Dict[Tuple[str, Optional[int]], int] = {}
        self._entry_categories: Dict[int, List[int]] = {}
        self._assets: Dict[int, Asset] = {}
        self._next_entry_id = 1
        self._next_category_id = 1
        self._next_asset_id = 1

    # Catalog entries

    def get_entry_by_sku(self, sku: str) -> Optional[CatalogEntry]:
        entry = self._entries.get(sku)
        return copy.deepcopy(entry) if entry else None

    def save_entry(self, entry: CatalogEntry) -> int:
        if entry.entry_id is None:
            existing = self._entries.get(entry.sku)
            if existing is not None:
                entry.entry_id = existing.entry_id
            else:
                entry.entry_id = self._next_entry_id
                self._next_entry_id += 1

        self._entries[entry.sku] = copy.deepcopy(entry)
        if entry.category_ids:
            self._entry_categories[entry.entry_id] = list(entry.category_ids)
        return entry.entry_id

    def resolve_category(self, name: str, parent_id: Optional[int] = None) -> int:
        key = (name, parent_id)
        if key not in self._categories:
            self._categories[key] = self._next_category_id
            self._next_category_id += 1
            logger.debug(f"Created category '{name}' (parent={parent_id})")
        return self._categories[key]

    def set_entry_categories(self, entry_id: int, category_ids: List[int]) -> None:
        self._entry_categories[entry_id] = list(category_ids)
        for entry in self._entries.values():
            if entry.entry_id == entry_id:
                entry.category_ids = list(category_ids)

    def get_entry_categories(self, entry_id: int) -> List[int]:
        return list(self._entry_categories.get(entry_id, []))

    def count_entries(self) -> int:
        return len(self._entries)

    def count_categories(self) -> int:
        return len(self._categories)

    # Assets

    def find_asset_by_url(self, source_url: str) -> Optional[Asset]:
        for asset in self._assets.values():
            if asset.source_url == source_url:
                return asset
        return None

    def find_asset_by_hash(self, file_hash: str) -> Optional[Asset]:
        if not file_hash:
            return None
        for asset in self._assets.values():
            if asset.file_hash == file_hash:
                return asset
        return None

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        return self._assets.get(asset_id)

    def add_asset(
        self,
        source_url: str,
        file_hash: Optional[str],
        file_path: Optional[str],
    ) -> Asset:
        asset = Asset(
            asset_id=self._next_asset_id,
            source_url=source_url,
            file_hash=file_hash,
            file_path=file_path,
        )
        self._assets[asset.asset_id] = asset
        self._next_asset_id += 1
        return asset

    def delete_asset(self, asset_id: int) -> bool:
        if self._assets.pop(asset_id, None) is None:
            return False

        for entry in self._entries.values():
            if entry.image_id == asset_id:
                entry.image_id = None
            entry.gallery_ids = [g for g in entry.gallery_ids if g != asset_id]
        return True

    def list_assets(self, path_prefix: Optional[str] = None) -> List[Asset]:
        assets = sorted(self._assets.values(), key=lambda a: a.asset_id)
        if path_prefix:
            assets = [a for a in assets if _matches_prefix(a, path_prefix)]
        return assets


def _matches_prefix(asset: Asset, path_prefix: str) -> bool:
    if asset.file_path and asset.file_path.startswith(path_prefix):
        return True
    return path_prefix in (asset.source_url or "")
